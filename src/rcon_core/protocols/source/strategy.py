"""
Source RCON 策略 (Strategy) [Asyncio Edition]

职责：
1. 认证握手：AUTH -> (可选的空 RESPONSE_VALUE) -> AUTH_RESPONSE。
2. 指令执行：指令包 + canary 包，按 id 重组多包响应。
3. id 分配：维护会话内单调递增的 id 计数。

多包响应的问题在于协议没有"后续还有分片"的标志位。
服务器按接收顺序处理请求并使用请求 id 作为响应 id，
因此在指令之后紧跟一个响应必然只有一个包的 canary，
收到 canary id 的响应即说明真实指令的所有分片都已到达。
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...exceptions import AuthError, ConfigError, MalformedPacketError, ProtocolError
from ...network import ReceiveTimeout
from .. import constants, packets
from ..base import BaseProtocol
from ..constants import PacketKind
from ..packets import Packet

if TYPE_CHECKING:
    from ...config import RconConfig
    from ...network import NetworkClient
    from ...state import RconState

# 认证阶段允许丢弃的 RESPONSE_VALUE 包数量上限
MAX_AUTH_PREAMBLE = 4


@dataclass(frozen=True)
class PendingCommand:
    """已编码、尚未发送的一次指令交换。

    Attributes:
        command: 原始指令文本 (仅用于日志)。
        request_id: 真实指令的 id (N)。
        canary_id: canary 的 id (N2)。
        request: 指令包字节流。
        canary: canary 包字节流。
    """

    command: str
    request_id: int
    canary_id: int
    request: bytes
    canary: bytes


def next_request_id(current: int) -> int:
    """返回 current 之后的下一个 id，超过有符号 32 位上限时回绕。"""
    if current >= constants.MAX_ID:
        return constants.START_ID
    return current + 1


class SourceProtocol(BaseProtocol):
    """Source 风格 RCON 协议策略实现 (Async)。"""

    def __init__(
        self,
        config: "RconConfig",
        state: "RconState",
        net_client: "NetworkClient",
    ):
        """初始化协议策略。

        Args:
            config: 全局配置对象。
            state: 共享状态对象。
            net_client: 异步网络客户端。

        Raises:
            ConfigError: canary 指令无法编码为合法的数据包。
        """
        super().__init__(config, state, net_client)
        try:
            self._build_canary(constants.START_ID)
        except MalformedPacketError as e:
            raise ConfigError(f"canary 指令无效: {e}") from e

        canary = config.canary_command
        self.logger.debug(
            f"Source RCON 策略已加载 (canary: {canary!r})"
            if canary is not None
            else "Source RCON 策略已加载 (canary: 空 RESPONSE_VALUE)"
        )

    # =========================================================================
    # 低层收发 (Low-Level)
    # =========================================================================

    async def send_packet(self, data: bytes) -> None:
        """发送一个已编码的数据包。"""
        await self.net_client.send(data)

    async def recv_packet(self) -> Packet:
        """从流中读取并解码恰好一个数据包。

        Raises:
            MalformedPacketError: Size 或终止符非法。
            ReceiveTimeout: 配置了 read_timeout 且超时。
            NetworkError: 连接关闭或 I/O 错误。
        """
        timeout = self.config.read_timeout
        header = await self.net_client.receive_exact(constants.SIZE_FIELD_LEN, timeout)
        size = packets.parse_size(header)
        payload = await self.net_client.receive_exact(size, timeout)
        packet = packets.parse_payload(payload)
        self.logger.debug(
            f"recv: id={packet.id} type={packet.kind} body_len={len(packet.body)}"
        )
        return packet

    # =========================================================================
    # 认证 (Auth)
    # =========================================================================

    async def authenticate(self) -> None:
        """执行 AUTH 握手。

        按协议，服务器会先回一个空的 RESPONSE_VALUE，再回 AUTH_RESPONSE；
        部分服务器只回 AUTH_RESPONSE。两种方式都被接受。

        Raises:
            AuthError: AUTH_RESPONSE 的 id 为 -1 (密码错误)。
            ProtocolError: 收到未知类型的包，或前导包过多。
            NetworkError: 网络通信失败。
        """
        auth_id = self.state.next_id
        await self.send_packet(packets.build_auth_packet(auth_id, self.config.password))

        discarded = 0
        while True:
            packet = await self.recv_packet()
            kind = packet.response_kind()

            if kind is PacketKind.AUTH_RESPONSE:
                break

            if kind is PacketKind.RESPONSE_VALUE:
                discarded += 1
                if discarded > MAX_AUTH_PREAMBLE:
                    raise ProtocolError(
                        f"认证阶段收到过多 RESPONSE_VALUE 包 ({discarded})，未见 AUTH_RESPONSE"
                    )
                self.logger.debug(f"丢弃认证前导包 (id={packet.id})")
                continue

            raise ProtocolError(f"认证阶段收到未知类型的数据包: type={packet.kind}")

        if packet.id == constants.AUTH_FAILED_ID:
            raise AuthError(request_id=packet.id)

        if packet.id != auth_id:
            self.logger.warning(
                f"AUTH_RESPONSE id 不匹配 (期望 {auth_id}，收到 {packet.id})，按认证成功处理"
            )

        self.state.authenticated = True
        self.state.previous_ids = frozenset({auth_id})
        self.state.next_id = next_request_id(auth_id)

    # =========================================================================
    # 指令执行 (Exec)
    # =========================================================================

    def prepare(self, command: str) -> PendingCommand:
        """分配 id 并编码指令与 canary，不做任何 I/O。

        id 计数在 execute 成功后才前进，因此编码失败不会改变会话状态。
        N2 总是 N 的后继 (由 next_request_id 决定)，回绕时为 (MAX_ID, START_ID)。

        Raises:
            MalformedPacketError: 指令过长、包含 NUL 或无法编码。
        """
        request_id = self.state.next_id
        canary_id = next_request_id(request_id)

        return PendingCommand(
            command=command,
            request_id=request_id,
            canary_id=canary_id,
            request=packets.build_exec_packet(request_id, command),
            canary=self._build_canary(canary_id),
        )

    async def execute(self, pending: PendingCommand) -> str:
        """发送指令与 canary，并重组响应直到 canary 的响应到达。

        对每个收到的包:
        - id == N: 属于本次响应，追加。
        - id == N2: canary 已回，响应结束 (不检查 Body)。
        - id 属于上一次交换: 迟到的残留包 (例如上一个 canary 的镜像尾包)，丢弃。
        - 其它 id: 外来包，按服务器复用 id 的情况处理，追加。

        Returns:
            str: 完整响应文本。

        Raises:
            NetworkError: canary 到达前连接关闭或 I/O 失败。
            ProtocolError: 等待 canary 超时，或数据包损坏。
        """
        request_id, canary_id = pending.request_id, pending.canary_id

        await self.send_packet(pending.request)
        await self.send_packet(pending.canary)

        chunks: list[bytes] = []
        while True:
            try:
                packet = await self.recv_packet()
            except ReceiveTimeout as e:
                raise ProtocolError(
                    f"canary 响应未到达 (id={canary_id})，无法确定响应边界: {e}"
                ) from e

            if packet.id == canary_id:
                break

            if packet.id == request_id:
                chunks.append(packet.body)
            elif packet.id in self.state.previous_ids:
                self.logger.debug(f"丢弃残留包 (id={packet.id})")
            else:
                self.logger.warning(
                    f"收到外来 id 的数据包 (id={packet.id}，期望 {request_id})，并入响应"
                )
                chunks.append(packet.body)

        self.state.previous_ids = frozenset({request_id, canary_id})
        self.state.next_id = next_request_id(canary_id)
        self.logger.debug(
            f"指令完成: {pending.command!r} ({len(chunks)} 个分片)"
        )
        return packets.decode_body(b"".join(chunks))

    def _build_canary(self, canary_id: int) -> bytes:
        """构建 canary 包：配置了指令则发送该指令，否则发送空 RESPONSE_VALUE。"""
        if self.config.canary_command is not None:
            return packets.build_exec_packet(canary_id, self.config.canary_command)
        return packets.build_response_value_packet(canary_id)
