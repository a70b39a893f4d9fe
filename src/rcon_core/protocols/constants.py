# src/rcon_core/protocols/constants.py
"""
Source RCON 协议常量表 (Constants)

仅定义协议的结构性常量（如类型码、长度限制、保留 id）。
不包含任何默认策略值（如默认超时、默认 canary 指令），这些应由 Config/Strategy 注入。
"""

from enum import Enum


# =========================================================================
# 协议类型码 (Packet Type Codes)
# =========================================================================
class Code:
    """数据包 Type 字段的原始取值。

    注意 AUTH_RESPONSE 与 EXEC_COMMAND 共用 2，这是协议的历史遗留，
    只能结合方向 (请求/响应) 区分，线上取值必须保持原样。
    """

    RESPONSE_VALUE = 0  # 指令输出 (Server -> Client)
    AUTH_RESPONSE = 2  # 认证结果 (Server -> Client)
    EXEC_COMMAND = 2  # 执行指令 (Client -> Server)
    AUTH = 3  # 认证请求 (Client -> Server)


class PacketKind(Enum):
    """带方向语义的数据包类型。

    同一个线上取值 (2) 对应两种含义，因此枚举值使用 (方向, 类型码) 二元组，
    避免 Enum 将 AUTH_RESPONSE 与 EXEC_COMMAND 合并为别名。
    """

    AUTH = ("request", Code.AUTH)
    EXEC_COMMAND = ("request", Code.EXEC_COMMAND)
    AUTH_RESPONSE = ("response", Code.AUTH_RESPONSE)
    RESPONSE_VALUE = ("response", Code.RESPONSE_VALUE)

    @property
    def code(self) -> int:
        """编码为线上使用的整数类型码。"""
        return self.value[1]

    @property
    def is_request(self) -> bool:
        return self.value[0] == "request"

    @classmethod
    def from_response_code(cls, code: int) -> "PacketKind | None":
        """将类型码视为服务器响应进行解码，无法识别时返回 None。"""
        if code == Code.RESPONSE_VALUE:
            return cls.RESPONSE_VALUE
        if code == Code.AUTH_RESPONSE:
            return cls.AUTH_RESPONSE
        return None

    @classmethod
    def from_request_code(cls, code: int) -> "PacketKind | None":
        """将类型码视为客户端请求进行解码，无法识别时返回 None。"""
        if code == Code.AUTH:
            return cls.AUTH
        if code == Code.EXEC_COMMAND:
            return cls.EXEC_COMMAND
        return None


# =========================================================================
# 结构长度 (Sizes)
# =========================================================================
SIZE_FIELD_LEN = 4  # Size 字段本身，不计入 size
HEADER_LEN = 8  # id (4B) + type (4B)
TERMINATOR = b"\x00\x00"  # Body 结束符 + 包结束符
MIN_PACKET_SIZE = HEADER_LEN + len(TERMINATOR)  # 10，空 Body 的最小帧
MAX_PACKET_SIZE = 4096  # Size 字段允许的最大值
MAX_BODY_LEN = MAX_PACKET_SIZE - MIN_PACKET_SIZE  # 4086

# =========================================================================
# 保留 id (Reserved IDs)
# =========================================================================
AUTH_FAILED_ID = -1  # 服务器以该 id 回应表示认证失败，客户端永不分配
START_ID = 1  # 会话 id 计数起点
MAX_ID = 2**31 - 1  # 有符号 32 位上限，超过后回绕至 START_ID
