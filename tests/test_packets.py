# Mirror tests for src/rcon_core/protocols/packets.py
import struct

import pytest

from rcon_core.exceptions import MalformedPacketError
from rcon_core.protocols import constants, packets
from rcon_core.protocols.constants import Code, PacketKind
from rcon_core.protocols.packets import Packet


def _frame(size: int, payload: bytes) -> bytes:
    return struct.pack("<i", size) + payload


# --- Build ---


def test_build_packet_exact_bytes():
    pkt = packets.build_packet(Packet(1, Code.EXEC_COMMAND, b"status"))
    assert pkt == (
        b"\x10\x00\x00\x00"  # size = 4 + 4 + 6 + 2
        b"\x01\x00\x00\x00"
        b"\x02\x00\x00\x00"
        b"status\x00\x00"
    )


def test_build_packet_negative_id():
    pkt = packets.build_packet(Packet(-1, Code.AUTH_RESPONSE))
    assert pkt == b"\x0a\x00\x00\x00" + b"\xff\xff\xff\xff" + b"\x02\x00\x00\x00" + b"\x00\x00"


def test_build_auth_and_exec_use_distinct_codes():
    auth = packets.parse_packet(packets.build_auth_packet(7, "pw"))
    exec_ = packets.parse_packet(packets.build_exec_packet(8, "echo hi"))
    canary = packets.parse_packet(packets.build_response_value_packet(9))

    assert (auth.kind, auth.body) == (3, b"pw")
    assert (exec_.kind, exec_.body) == (2, b"echo hi")
    assert (canary.id, canary.kind, canary.body) == (9, 0, b"")


def test_build_rejects_null_in_body():
    with pytest.raises(MalformedPacketError, match="0x00"):
        packets.build_packet(Packet(1, Code.EXEC_COMMAND, b"say \x00 hi"))


def test_build_body_size_limit():
    max_body = b"a" * constants.MAX_BODY_LEN
    pkt = packets.build_packet(Packet(1, Code.EXEC_COMMAND, max_body))
    assert len(pkt) == constants.SIZE_FIELD_LEN + constants.MAX_PACKET_SIZE

    with pytest.raises(MalformedPacketError, match="过大"):
        packets.build_packet(Packet(1, Code.EXEC_COMMAND, max_body + b"a"))


def test_build_rejects_id_out_of_range():
    with pytest.raises(MalformedPacketError):
        packets.build_packet(Packet(2**31, Code.EXEC_COMMAND))


def test_build_exec_rejects_unencodable_text():
    with pytest.raises(MalformedPacketError):
        packets.build_exec_packet(1, "bad \udc80 surrogate")


# --- Parse ---


@pytest.mark.parametrize(
    "packet",
    [
        Packet(0, Code.RESPONSE_VALUE, b""),
        Packet(-1, Code.AUTH_RESPONSE, b""),
        Packet(42, Code.RESPONSE_VALUE, "中文输出".encode()),
        Packet(2**31 - 1, Code.AUTH, b"x" * constants.MAX_BODY_LEN),
    ],
)
def test_parse_inverts_build(packet):
    assert packets.parse_packet(packets.build_packet(packet)) == packet


def test_parse_preserves_unknown_kind():
    data = _frame(10, struct.pack("<ii", 5, 100) + b"\x00\x00")
    pkt = packets.parse_packet(data)
    assert pkt.kind == 100
    assert pkt.response_kind() is None
    assert pkt.request_kind() is None


def test_parse_truncated_frame_is_rejected():
    full = packets.build_exec_packet(1, "status")
    with pytest.raises(MalformedPacketError, match="不完整"):
        packets.parse_packet(full[:-3])


def test_parse_trailing_garbage_is_rejected():
    full = packets.build_exec_packet(1, "status")
    with pytest.raises(MalformedPacketError, match="多余"):
        packets.parse_packet(full + b"\x00")


@pytest.mark.parametrize("size", [-1, 0, 9, constants.MAX_PACKET_SIZE + 1])
def test_parse_size_out_of_range(size):
    with pytest.raises(MalformedPacketError):
        packets.parse_size(struct.pack("<i", size))


def test_parse_size_needs_four_bytes():
    with pytest.raises(MalformedPacketError):
        packets.parse_size(b"\x0a\x00")


def test_parse_payload_bad_terminator():
    payload = struct.pack("<ii", 1, 0) + b"ok\x00\x01"
    with pytest.raises(MalformedPacketError, match="终止符"):
        packets.parse_payload(payload)


def test_parse_payload_too_short():
    with pytest.raises(MalformedPacketError, match="过短"):
        packets.parse_payload(b"\x00" * 9)


def test_split_packets_keeps_incomplete_tail():
    first = packets.build_exec_packet(1, "a")
    second = packets.build_exec_packet(2, "bb")
    data = first + second + second[:5]

    result, rest = packets.split_packets(data)

    assert [p.id for p in result] == [1, 2]
    assert [p.body for p in result] == [b"a", b"bb"]
    assert rest == second[:5]


def test_decode_body_replaces_invalid_utf8():
    pkt = Packet(1, Code.RESPONSE_VALUE, b"ok \xff\xfe")
    assert pkt.text == "ok ��"
    assert packets.decode_body("服务器".encode()) == "服务器"


# --- PacketKind ---


def test_packet_kind_keeps_wire_codes():
    assert PacketKind.AUTH.code == 3
    assert PacketKind.AUTH_RESPONSE.code == 2
    assert PacketKind.EXEC_COMMAND.code == 2
    assert PacketKind.RESPONSE_VALUE.code == 0
    # 共用 2 的两种类型不能合并为 Enum 别名
    assert PacketKind.AUTH_RESPONSE is not PacketKind.EXEC_COMMAND
    assert len(list(PacketKind)) == 4


def test_packet_kind_direction_mapping():
    assert PacketKind.from_response_code(2) is PacketKind.AUTH_RESPONSE
    assert PacketKind.from_request_code(2) is PacketKind.EXEC_COMMAND
    assert PacketKind.from_response_code(0) is PacketKind.RESPONSE_VALUE
    assert PacketKind.from_request_code(3) is PacketKind.AUTH
    assert PacketKind.from_response_code(3) is None
    assert PacketKind.from_request_code(0) is None
    assert PacketKind.AUTH.is_request and not PacketKind.RESPONSE_VALUE.is_request
