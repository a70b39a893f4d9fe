# File: src/rcon_core/client.py
"""
RCON 客户端引擎 (Client Engine)

职责：
1. 资源组装：State + Network + Config + Strategy。
2. 生命周期：Connect -> Auth -> Exec* -> Close。
3. 互斥：同一会话同一时刻只允许一条指令在途。
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from .config import RconConfig, create_config_from_dict, parse_address
from .exceptions import ConfigError, NotConnectedError, RconError, StateError
from .network import NetworkClient
from .protocols.base import BaseProtocol
from .protocols.constants import START_ID
from .protocols.source import SourceProtocol
from .state import RconState, SessionStatus

logger = logging.getLogger(__name__)

# 定义回调函数类型别名：支持同步或异步函数
StatusCallback = Callable[[SessionStatus, str], Any | Awaitable[Any]]


class RconClient:
    """Source RCON 客户端 (Async)。

    一个实例对应一条 TCP 连接与一个会话。不同实例之间完全独立。

    Example:
        async with await RconClient.open("127.0.0.1:27015", "secret") as rcon:
            print(await rcon.exec("status"))
    """

    def __init__(
        self,
        config: RconConfig,
        status_callback: StatusCallback | None = None,
    ) -> None:
        """初始化客户端，不建立连接。

        Args:
            config: 全局配置对象。
            status_callback: 初始状态回调。也可以使用 add_listener 注册。

        Raises:
            ConfigError: 组件初始化失败 (如 canary 指令无效)。
        """
        self.config = config

        self._listeners: list[StatusCallback] = []
        if status_callback:
            self.add_listener(status_callback)

        try:
            self._state = RconState()
            self.net_client = NetworkClient(config.host, config.port)
            self.protocol: BaseProtocol = SourceProtocol(
                config, self._state, self.net_client
            )
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"组件初始化失败: {e}") from e

        self._exec_lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        address: str | tuple[str, int],
        password: str,
        canary_command: str | None = None,
        connect_timeout: float | None = None,
        *,
        read_timeout: float | None = None,
        status_callback: StatusCallback | None = None,
    ) -> "RconClient":
        """连接并认证，返回一个处于 READY 状态的客户端。

        Args:
            address: `host:port` 字符串或 (host, port) 元组。
            password: RCON 密码。
            canary_command: 用作响应结束标记的无副作用指令，None 时使用空 RESPONSE_VALUE。
            connect_timeout: 连接超时秒数，None 表示使用系统默认。
            read_timeout: 单次读取超时秒数，None 表示无限等待。
            status_callback: 状态变更回调。

        Raises:
            ConfigError: 地址或参数无效。
            NetworkError: 无法连接服务器。
            AuthError: 密码错误。
            ProtocolError: 认证阶段协议交互异常。
        """
        host, port = parse_address(address)
        config = create_config_from_dict(
            {
                "host": host,
                "port": port,
                "password": password,
                "canary_command": canary_command,
                "connect_timeout": connect_timeout,
                "read_timeout": read_timeout,
            }
        )
        client = cls(config, status_callback=status_callback)
        await client.connect()
        return client

    @property
    def state(self) -> RconState:
        """获取当前会话状态的只读副本。

        返回的是一个副本 (Copy)，修改它不会影响客户端内部状态。
        """
        return replace(self._state)

    @property
    def is_ready(self) -> bool:
        return self._state.is_ready

    def add_listener(self, callback: StatusCallback) -> None:
        """注册状态变更监听器。"""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: StatusCallback) -> None:
        """移除状态变更监听器。"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def connect(self) -> None:
        """建立连接并执行认证。

        已关闭或已失败的客户端可以再次调用以重新打开会话，
        此时 id 计数从头开始。

        Raises:
            StateError: 会话已经处于打开状态。
            NetworkError: 连接失败。
            AuthError: 认证被拒绝。
            ProtocolError: 认证阶段协议交互异常。
        """
        if self._state.is_open:
            raise StateError(f"会话已打开 (状态: {self._state.status.name})")

        self._reset_state()
        self._update_status(
            SessionStatus.CONNECTING, f"正在连接 {self.config.address}..."
        )

        try:
            await self.net_client.connect(self.config.connect_timeout)
            self._update_status(SessionStatus.AUTHENTICATING, "正在认证...")
            await self.protocol.authenticate()

        except (RconError, asyncio.CancelledError) as e:
            await self._fail(e)
            raise

        self._update_status(SessionStatus.READY, "认证成功")

    async def exec(self, command: str) -> str:
        """执行一条指令并返回完整的响应文本。

        并发调用会被串行化，不会交错。

        Args:
            command: 要执行的 RCON 指令。

        Returns:
            str: 响应文本 (非法 UTF-8 以替换字符表示)。

        Raises:
            NotConnectedError: 会话尚未打开、已关闭或已失败。
            MalformedPacketError: 指令无法编码 (此时未发送任何数据，会话保持可用)。
            NetworkError: 响应完成前连接中断 (会话作废)。
            ProtocolError: 响应边界无法确定或收到损坏的数据包 (会话作废)。
        """
        async with self._exec_lock:
            if not self._state.is_ready:
                raise NotConnectedError(
                    f"会话不可用 (状态: {self._state.status.name})"
                )

            pending = self.protocol.prepare(command)

            self._state.status = SessionStatus.EXECUTING
            try:
                result = await self.protocol.execute(pending)
            except (RconError, asyncio.CancelledError) as e:
                # 流的位置已不可知，部分响应直接丢弃
                await self._fail(e)
                raise

            self._state.status = SessionStatus.READY
            return result

    async def close(self) -> None:
        """关闭连接。重复调用无副作用。"""
        if self._state.status == SessionStatus.CLOSED:
            return

        await self.net_client.close()
        self._state.authenticated = False
        self._update_status(SessionStatus.CLOSED, "会话已关闭")

    async def __aenter__(self) -> "RconClient":
        if not self._state.is_open:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} server={self.config.address} "
            f"status={self._state.status.name}>"
        )

    async def _fail(self, error: BaseException) -> None:
        """记录错误、关闭连接并将会话标记为 FAILED。"""
        message = str(error) or error.__class__.__name__
        self._state.last_error = message
        self._state.authenticated = False
        await self.net_client.close()

        # 并发 close() 已将会话标记为 CLOSED 时保持不变
        if self._state.status != SessionStatus.CLOSED:
            self._update_status(SessionStatus.FAILED, f"会话失败: {message}")

    def _reset_state(self) -> None:
        """重置本地会话状态，供重新打开使用。"""
        self._state.status = SessionStatus.DISCONNECTED
        self._state.authenticated = False
        self._state.next_id = START_ID
        self._state.previous_ids = frozenset()
        self._state.last_error = ""

    def _update_status(self, status: SessionStatus, msg: str) -> None:
        """更新内部状态并异步触发所有回调。"""
        self._state.status = status
        logger.info(f"[{status.name}] {msg}")

        for callback in self._listeners:
            try:
                if inspect.iscoroutinefunction(callback):
                    # 如果是 async def 定义的协程，创建 Task 执行
                    asyncio.create_task(callback(status, msg))  # type: ignore
                else:
                    # 如果是同步函数，使用 call_soon 调度
                    loop = asyncio.get_running_loop()
                    loop.call_soon(callback, status, msg)
            except RuntimeError:
                # 应对 loop 尚未运行或已关闭的边缘情况
                pass
            except Exception as e:
                logger.error(f"回调执行异常: {e}")
