"""
RCON 协议基类 (Base Protocol)

定义所有 RCON 协议策略必须实现的抽象接口。
"""

import abc
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import RconConfig
    from ..network import NetworkClient
    from ..state import RconState


class BaseProtocol(abc.ABC):
    """协议策略抽象基类。

    具体的协议实现（如 Source 风格）都必须继承此类，
    并实现认证与指令执行的异步逻辑。
    """

    def __init__(
        self,
        config: "RconConfig",
        state: "RconState",
        net_client: "NetworkClient",
    ) -> None:
        """初始化协议基类。

        Args:
            config: 全局配置对象。
            state: 共享状态对象。
            net_client: 异步网络客户端实例。
        """
        self.config = config
        self.state = state
        self.net_client = net_client
        self.logger = logging.getLogger(self.__class__.__name__)

    @abc.abstractmethod
    async def authenticate(self) -> None:
        """[Abstract] 执行认证握手。

        Raises:
            AuthError: 认证被拒绝（密码错误）。
            NetworkError: 网络通信异常。
            ProtocolError: 协议交互异常。
        """
        raise NotImplementedError

    @abc.abstractmethod
    def prepare(self, command: str) -> Any:
        """[Abstract] 分配 id 并编码一次指令交换，不做任何 I/O。

        Raises:
            MalformedPacketError: 指令无法编码为合法的数据包。
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def execute(self, pending: Any) -> str:
        """[Abstract] 发送 prepare 的结果并返回完整的响应文本。

        Raises:
            NetworkError: 网络通信异常或响应未完成时连接关闭。
            ProtocolError: 响应边界无法确定。
        """
        raise NotImplementedError
