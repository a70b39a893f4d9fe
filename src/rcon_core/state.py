# File: src/rcon_core/state.py
"""
RCON 核心库 - 状态模块

负责定义和存储所有易变的会话状态。
本模块不包含业务逻辑，仅作为数据容器供 Client 和 Strategy 共享读写。
"""

from dataclasses import dataclass
from enum import Enum, auto

from .protocols.constants import START_ID


class SessionStatus(Enum):
    """RCON 会话的生命周期状态枚举。

    状态流转示意:
    DISCONNECTED -> CONNECTING -> AUTHENTICATING -> READY <-> EXECUTING
                        |               |             |           |
                        v               v             v           v
                      FAILED          FAILED        CLOSED      FAILED
    """

    DISCONNECTED = auto()
    """初始状态，客户端已实例化但尚未建立连接。"""

    CONNECTING = auto()
    """正在建立 TCP 连接。"""

    AUTHENTICATING = auto()
    """TCP 已连接，正在进行 AUTH 握手。"""

    READY = auto()
    """认证成功，可以执行指令。"""

    EXECUTING = auto()
    """正在执行一条指令并等待 canary 响应。"""

    CLOSED = auto()
    """用户主动关闭了会话。"""

    FAILED = auto()
    """发生了传输或协议错误，会话已作废，需要重新打开。"""


@dataclass
class RconState:
    """存储 RCON 会话的易变状态数据。

    该对象是非持久化的。每次重新打开连接时都会被重置，
    以避免旧的 id 计数污染新会话。

    Attributes:
        status: 当前会话的运行状态。
        authenticated: 是否已通过 AUTH 握手。
        next_id: 下一个待分配的数据包 id，每次 exec 消耗两个 (指令 + canary)。
        previous_ids: 上一次交换 (认证或指令 + canary) 使用过的 id，其迟到的包在下一次 exec 中丢弃。
        last_error: 最近一次发生的错误信息描述，用于 UI 显示。
    """

    status: SessionStatus = SessionStatus.DISCONNECTED
    authenticated: bool = False
    next_id: int = START_ID
    previous_ids: frozenset[int] = frozenset()
    last_error: str = ""

    @property
    def is_ready(self) -> bool:
        """判断当前会话是否可以执行指令。

        Returns:
            bool: 状态为 READY 时返回 True。
        """
        return self.status == SessionStatus.READY

    @property
    def is_open(self) -> bool:
        """判断底层连接在逻辑上是否仍然存活 (包括握手与执行中)。"""
        return self.status in (
            SessionStatus.CONNECTING,
            SessionStatus.AUTHENTICATING,
            SessionStatus.READY,
            SessionStatus.EXECUTING,
        )
