# tests/conftest.py
import asyncio
import contextlib
import struct
import sys
from pathlib import Path

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rcon_core.config import RconConfig
from rcon_core.protocols import constants, packets
from rcon_core.protocols.constants import Code
from rcon_core.protocols.packets import Packet

PASSWORD = "secret"


class ServerConnection:
    """Mock 服务器侧的一条连接，按包收发。"""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer
        self.received: list[Packet] = []

    async def recv(self) -> Packet:
        header = await self.reader.readexactly(constants.SIZE_FIELD_LEN)
        size = packets.parse_size(header)
        packet = packets.parse_payload(await self.reader.readexactly(size))
        self.received.append(packet)
        return packet

    def send(self, request_id: int, kind: int, body: bytes = b"") -> None:
        self.writer.write(packets.build_packet(Packet(request_id, kind, body)))

    def send_raw(self, data: bytes) -> None:
        self.writer.write(data)

    async def drain(self) -> None:
        await self.writer.drain()

    async def accept_auth(self, password: str = PASSWORD, preamble: bool = True) -> Packet:
        """处理 AUTH 请求：可选的空 RESPONSE_VALUE，随后是 AUTH_RESPONSE。"""
        auth = await self.recv()
        assert auth.kind == Code.AUTH
        if preamble:
            self.send(auth.id, Code.RESPONSE_VALUE)
        ok = auth.body == password.encode()
        self.send(auth.id if ok else constants.AUTH_FAILED_ID, Code.AUTH_RESPONSE)
        await self.drain()
        return auth

    async def reply(self, bodies: list[bytes], mirror_tail: bool = False) -> tuple[Packet, Packet]:
        """读取指令与 canary，先回复指令分片，再回复 canary。

        mirror_tail 模拟 Source 服务器对空 RESPONSE_VALUE 的双包镜像。
        """
        command = await self.recv()
        canary = await self.recv()
        for body in bodies:
            self.send(command.id, Code.RESPONSE_VALUE, body)
        self.send(canary.id, Code.RESPONSE_VALUE)
        if mirror_tail:
            # Body 为 0x00000001，含 NUL，只能手工拼帧
            self.send_raw(
                struct.pack("<iii", 14, canary.id, Code.RESPONSE_VALUE)
                + b"\x00\x00\x00\x01\x00\x00"
            )
        await self.drain()
        return command, canary

    async def wait_eof(self) -> None:
        """一直读取直到客户端关闭连接。"""
        while await self.reader.read(1024):
            pass


class MockRconServer:
    """脚本化的 RCON 服务器，每条连接交给 handler 协程处理。"""

    def __init__(self, handler):
        self.handler = handler
        self.connections: list[ServerConnection] = []
        self.errors: list[BaseException] = []
        self._server: asyncio.AbstractServer | None = None
        self.host = "127.0.0.1"
        self.port = 0

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def config(self, **overrides) -> RconConfig:
        values = {"host": self.host, "port": self.port, "password": PASSWORD}
        values.update(overrides)
        return RconConfig(**values)

    async def _on_connect(self, reader, writer) -> None:
        conn = ServerConnection(reader, writer)
        self.connections.append(conn)
        try:
            await self.handler(conn)
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        except AssertionError as e:
            self.errors.append(e)
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    async def __aenter__(self) -> "MockRconServer":
        self._server = await asyncio.start_server(self._on_connect, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        assert self._server is not None
        self._server.close()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._server.wait_closed(), timeout=2.0)
        if exc_type is None and self.errors:
            raise self.errors[0]


@pytest.fixture
def rcon_server():
    """
    [Fixture] 返回 MockRconServer 工厂。

    用法:
        async with rcon_server(handler) as server:
            ...
    """
    return MockRconServer


@pytest.fixture
def valid_config():
    """[Fixture] 返回一个最小化的 RconConfig 对象。"""
    return RconConfig(host="127.0.0.1", port=27015, password=PASSWORD)
