# File: src/rcon_core/exceptions.py
"""
RCON 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用（如 CLI/Bot）能区分
"密码错误" 与 "服务器不可达" 等不同失败原因。
"""


class RconError(Exception):
    """RCON 核心库所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 rcon-core 抛出的已知错误。
    """

    pass


class ConfigError(RconError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 password / address)。
    2. 字段格式错误 (如端口非法、超时不是数字)。
    3. 找不到配置文件或环境变量。
    """

    pass


class NetworkError(RconError):
    """网络层面的错误 (I/O 级别)。

    触发场景:
    1. TCP 连接失败或连接超时。
    2. 发送 (write) 或 接收 (read) 失败。
    3. 服务器在响应完成前关闭了连接 (EOF)。

    注意: 库内不会自动重试，RCON 指令不一定是幂等的。
    """

    pass


class ProtocolError(RconError):
    """协议交互错误 (逻辑级别)。

    触发场景:
    1. 认证阶段收到无法识别的数据包类型。
    2. 等待 canary 响应超时，重组算法无法确定响应边界。
    """

    pass


class MalformedPacketError(ProtocolError):
    """数据包结构损坏。

    触发场景:
    1. Size 字段为负数、小于最小帧 (10 字节) 或超过 4096。
    2. 缓冲区中的字节数少于 Size 字段声明的长度。
    3. 末尾两个终止字节不全为 0x00。
    4. 构建时 Body 过长或包含 0x00。
    """

    pass


class StateError(RconError):
    """状态机错误 (FSM Violation)。

    触发场景:
    1. 在未认证状态下执行指令。
    2. 在已连接状态下重复调用 connect。
    """

    pass


class NotConnectedError(StateError):
    """会话不可用 (尚未打开、已关闭或已失败) 时执行操作。"""

    pass


class AuthError(RconError):
    """认证被拒绝 (业务层面的失败)。

    服务器以 id = -1 的 AUTH_RESPONSE 回应认证请求时抛出。
    这通常意味着 RCON 密码错误，需要用户干预。
    """

    def __init__(self, message: str = "认证失败：RCON 密码错误", request_id: int | None = None) -> None:
        """初始化认证错误。

        Args:
            message: 错误描述信息。
            request_id: 服务器回应的原始 id (通常为 -1)。
        """
        super().__init__(message)
        self.request_id = request_id
