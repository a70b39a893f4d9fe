"""
Source RCON 协议层 (Protocol Layer)

本包的顶层负责协议数据包的纯粹构建 (Build) 与解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何状态管理 (State)。
- 认证与重组策略位于子包 `source`，需显式导入。
"""

from . import constants
from .constants import Code, PacketKind
from .packets import (
    Packet,
    build_auth_packet,
    build_exec_packet,
    build_packet,
    build_response_value_packet,
    decode_body,
    parse_packet,
    parse_payload,
    parse_size,
    split_packets,
)

# 公共 API
__all__ = [
    "constants",
    "Code",
    "PacketKind",
    "Packet",
    "build_packet",
    "build_auth_packet",
    "build_exec_packet",
    "build_response_value_packet",
    "parse_size",
    "parse_payload",
    "parse_packet",
    "split_packets",
    "decode_body",
]
