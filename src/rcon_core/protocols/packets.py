# File: src/rcon_core/protocols/packets.py
"""
Source RCON 封包构建器与解析器 (Packet Builders & Parsers)

负责 Packet 数据结构与线上二进制字节流 (bytes) 之间的双向转换。
本模块是无状态的 (Stateless)，不持有任何配置或会话信息，也不做任何 I/O。

线上格式 (全部为小端序有符号 32 位整数):
    Size(4B) + ID(4B) + Type(4B) + Body(NB) + 0x00 + 0x00
其中 Size 不包含自身的 4 字节。
"""

import logging
import struct
from dataclasses import dataclass

from ..exceptions import MalformedPacketError
from . import constants
from .constants import Code, PacketKind

logger = logging.getLogger(__name__)

_INT32 = struct.Struct("<i")
_HEADER = struct.Struct("<ii")


@dataclass(frozen=True)
class Packet:
    """一个 RCON 数据包。

    Attributes:
        id: 客户端选择的关联 id (有符号 32 位)。
        kind: 原始类型码。未知类型码原样保留，以兼容服务器扩展。
        body: 原始 Body 字节，不含终止符。
    """

    id: int
    kind: int
    body: bytes = b""

    @property
    def text(self) -> str:
        """Body 的文本形式 (UTF-8，非法字节以替换字符表示)。"""
        return decode_body(self.body)

    def response_kind(self) -> PacketKind | None:
        """将类型码视为服务器响应解释。"""
        return PacketKind.from_response_code(self.kind)

    def request_kind(self) -> PacketKind | None:
        """将类型码视为客户端请求解释。"""
        return PacketKind.from_request_code(self.kind)


# =========================================================================
# Build (Encode)
# =========================================================================


def build_packet(packet: Packet) -> bytes:
    """将 Packet 编码为线上字节流。

    Args:
        packet: 待编码的数据包。

    Returns:
        bytes: Size + ID + Type + Body + 0x00 0x00。

    Raises:
        MalformedPacketError: Body 含有 0x00、总长度超限或 id/type 超出 32 位范围。
    """
    body = packet.body
    if b"\x00" in body:
        raise MalformedPacketError("Body 中不允许出现 0x00 (协议保留为终止符)")

    size = constants.HEADER_LEN + len(body) + len(constants.TERMINATOR)
    if size > constants.MAX_PACKET_SIZE:
        raise MalformedPacketError(
            f"数据包过大: size={size} (Body 最多 {constants.MAX_BODY_LEN} 字节)"
        )

    try:
        header = _INT32.pack(size) + _HEADER.pack(packet.id, packet.kind)
    except struct.error as e:
        raise MalformedPacketError(f"id/type 超出 32 位范围: {e}") from e

    return header + body + constants.TERMINATOR


def _encode_text(text: str, field: str) -> bytes:
    try:
        return text.encode("utf-8", "strict")
    except UnicodeEncodeError as e:
        raise MalformedPacketError(
            f"{field} 包含无法编码的字符: {e.object[e.start : e.end]!r}"
        ) from e


def build_auth_packet(request_id: int, password: str) -> bytes:
    """构建认证请求包 (SERVERDATA_AUTH, 3)。"""
    return build_packet(Packet(request_id, Code.AUTH, _encode_text(password, "密码")))


def build_exec_packet(request_id: int, command: str) -> bytes:
    """构建指令执行包 (SERVERDATA_EXECCOMMAND, 2)。"""
    return build_packet(
        Packet(request_id, Code.EXEC_COMMAND, _encode_text(command, "指令"))
    )


def build_response_value_packet(request_id: int, body: str = "") -> bytes:
    """构建 RESPONSE_VALUE 包 (0)。

    客户端发送一个空的 RESPONSE_VALUE 时，Source 服务器会原样镜像回来，
    因此它可以充当零副作用的 canary。
    """
    return build_packet(
        Packet(request_id, Code.RESPONSE_VALUE, _encode_text(body, "Body"))
    )


# =========================================================================
# Parse (Decode)
# =========================================================================


def parse_size(header: bytes) -> int:
    """解析 4 字节的 Size 字段并校验范围。

    Args:
        header: 数据包的前 4 个字节。

    Returns:
        int: 后续需要读取的字节数。

    Raises:
        MalformedPacketError: 长度不足 4 字节、Size 为负、小于最小帧或超过上限。
    """
    if len(header) != constants.SIZE_FIELD_LEN:
        raise MalformedPacketError(f"Size 字段长度错误: {len(header)} 字节")

    (size,) = _INT32.unpack(header)
    if size < 0:
        raise MalformedPacketError(f"Size 为负数: {size}")
    if size < constants.MIN_PACKET_SIZE:
        raise MalformedPacketError(
            f"数据包过短: size={size} (最小帧为 {constants.MIN_PACKET_SIZE} 字节)"
        )
    if size > constants.MAX_PACKET_SIZE:
        raise MalformedPacketError(
            f"数据包过大: size={size} (上限 {constants.MAX_PACKET_SIZE})"
        )
    return size


def parse_payload(payload: bytes) -> Packet:
    """解析 Size 字段之后的数据部分。

    Args:
        payload: ID + Type + Body + 0x00 0x00。

    Returns:
        Packet: 解码后的数据包。

    Raises:
        MalformedPacketError: 少于 10 字节或末尾两个字节不全为 0x00。
    """
    if len(payload) < constants.MIN_PACKET_SIZE:
        raise MalformedPacketError(
            f"数据包过短: {len(payload)} 字节 (最小帧为 {constants.MIN_PACKET_SIZE} 字节)"
        )
    if payload[-2:] != constants.TERMINATOR:
        raise MalformedPacketError(f"终止符无效: {payload[-2:].hex()}")

    request_id, kind = _HEADER.unpack_from(payload, 0)
    body = payload[constants.HEADER_LEN : -2]
    return Packet(id=request_id, kind=kind, body=body)


def parse_packet(data: bytes) -> Packet:
    """从缓冲区中解析恰好一个带 Size 前缀的完整数据包。

    Args:
        data: 完整的数据帧 (Size + Payload)。

    Returns:
        Packet: 解码后的数据包。

    Raises:
        MalformedPacketError: 缓冲区字节数与 Size 字段声明不符，或帧结构损坏。
    """
    size = parse_size(data[: constants.SIZE_FIELD_LEN])
    payload = data[constants.SIZE_FIELD_LEN :]
    if len(payload) < size:
        raise MalformedPacketError(
            f"数据不完整: 声明 {size} 字节，实际仅有 {len(payload)} 字节"
        )
    if len(payload) > size:
        raise MalformedPacketError(
            f"存在多余数据: 声明 {size} 字节，实际有 {len(payload)} 字节"
        )
    return parse_payload(payload)


def split_packets(data: bytes) -> tuple[list[Packet], bytes]:
    """从缓冲区中依次解析所有完整的数据包。

    Args:
        data: 可能包含多个数据帧的原始字节流。

    Returns:
        tuple[list[Packet], bytes]:
            - packets: 已解析的完整数据包列表。
            - rest: 末尾不完整帧的剩余字节。

    Raises:
        MalformedPacketError: 某个帧的 Size 或结构非法。
    """
    result: list[Packet] = []
    offset = 0
    while len(data) - offset >= constants.SIZE_FIELD_LEN:
        size = parse_size(data[offset : offset + constants.SIZE_FIELD_LEN])
        end = offset + constants.SIZE_FIELD_LEN + size
        if end > len(data):
            break
        result.append(parse_payload(data[offset + constants.SIZE_FIELD_LEN : end]))
        offset = end
    return result, data[offset:]


def decode_body(body: bytes) -> str:
    """将 Body 解码为文本，非法 UTF-8 序列以替换字符表示，永不失败。"""
    return body.decode("utf-8", errors="replace")
