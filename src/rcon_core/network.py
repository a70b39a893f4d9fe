# src/rcon_core/network.py
"""
RCON 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP 连接的建立、发送、定长接收与关闭逻辑。
该模块屏蔽了底层 StreamReader/StreamWriter 的复杂性，向策略层提供纯粹的 bytes 收发接口。
"""

import asyncio
import logging
from typing import Optional

from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class ReceiveTimeout(NetworkError):
    """在规定时间内没有收到足够的数据。"""

    pass


class NetworkClient:
    """
    封装 asyncio TCP 操作的客户端。
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def is_connected(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self, timeout: float | None = None) -> None:
        """
        建立 TCP 连接。

        Args:
            timeout: 连接超时秒数，None 表示使用系统默认。

        Raises:
            NetworkError: 连接被拒绝、DNS 解析失败或超时。
        """
        target = (self.host, self.port)
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=timeout
            )
            logger.debug(f"TCP 连接已建立: {target}")

        except asyncio.TimeoutError:
            raise NetworkError(f"连接超时 {target} ({timeout}s)") from None
        except OSError as e:
            raise NetworkError(f"连接失败 {target}: {e}") from e

    async def send(self, data: bytes) -> None:
        """
        发送数据并等待写缓冲排空。
        """
        if not self.is_connected:
            raise NetworkError("Transport 已关闭")

        assert self.writer is not None

        try:
            self.writer.write(data)
            await self.writer.drain()
        except (OSError, RuntimeError) as e:
            raise NetworkError(f"发送失败: {e}") from e

    async def receive_exact(self, n: int, timeout: float | None = None) -> bytes:
        """
        接收恰好 n 个字节 (Async)。

        底层可能需要多次读取，直到凑满 n 字节或连接结束。
        使用 asyncio.wait_for 实现超时控制。

        Raises:
            ReceiveTimeout: 超时。
            NetworkError: 连接在读满之前关闭，或发生 I/O 错误。
        """
        if self.reader is None:
            raise NetworkError("Reader 未初始化")

        try:
            return await asyncio.wait_for(self.reader.readexactly(n), timeout=timeout)

        except asyncio.TimeoutError:
            raise ReceiveTimeout(f"接收超时 ({timeout}s)") from None
        except asyncio.IncompleteReadError as e:
            raise NetworkError(
                f"连接已被对端关闭 (期望 {n} 字节，仅收到 {len(e.partial)} 字节)"
            ) from e
        except OSError as e:
            raise NetworkError(f"接收错误: {e}") from e

    async def close(self) -> None:
        """关闭 Transport"""
        writer = self.writer
        self.reader = None
        self.writer = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            # 对端已重置连接，本地资源已释放
            logger.debug(f"关闭连接时出现异常: {e}")
        logger.debug("TCP Transport 已关闭")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
