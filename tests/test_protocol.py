import io

import pytest

from bourse.protocol import (
    HEADER_SIZE,
    CancelInfo,
    EscrowInfo,
    FundsInfo,
    NotifyInfo,
    OrderInfo,
    PacketHeader,
    PacketReader,
    PacketType,
    ProtocolError,
    StatusInfo,
    send_packet,
)


def frame(packet_type, sec, payload=b""):
    return PacketHeader(int(packet_type), len(payload), sec, 0).pack() + payload


@pytest.mark.parametrize(
    "record",
    [
        PacketHeader(int(PacketType.BUY), 8, 1700000000, 999),
        StatusInfo(100, 5, 20, 30, 25, 7, 3),
        NotifyInfo(1, 2, 3, 4),
        FundsInfo(1000),
        EscrowInfo(42),
        OrderInfo(10, 99),
        CancelInfo(17),
    ],
)
def test_record_round_trip(record):
    assert type(record).unpack(record.pack()) == record


def test_header_size_matches_packed_length():
    assert len(PacketHeader(int(PacketType.ACK)).pack()) == HEADER_SIZE


def test_fields_are_big_endian():
    assert FundsInfo(1).pack() == b"\x00\x00\x00\x01"


def test_unpack_wrong_length_raises():
    with pytest.raises(ProtocolError):
        OrderInfo.unpack(b"\x00" * 3)


def test_send_then_receive():
    stream = io.BytesIO()
    sent = send_packet(stream, PacketType.DEPOSIT, FundsInfo(250))
    stream.seek(0)
    header, payload = PacketReader(stream).receive()
    assert header == sent
    assert header.type == PacketType.DEPOSIT
    assert FundsInfo.unpack(payload) == FundsInfo(250)


def test_send_without_payload():
    stream = io.BytesIO()
    header = send_packet(stream, PacketType.STATUS)
    assert header.size == 0
    assert len(stream.getvalue()) == HEADER_SIZE


def test_send_raw_bytes_payload():
    stream = io.BytesIO()
    header = send_packet(stream, PacketType.LOGIN, b"alice")
    assert header.size == len(b"alice")
    assert stream.getvalue()[HEADER_SIZE:] == b"alice"


def test_send_oversized_payload_raises():
    with pytest.raises(ProtocolError):
        send_packet(io.BytesIO(), PacketType.LOGIN, b"x" * 70000)


def test_receive_at_end_raises_eof():
    with pytest.raises(EOFError):
        PacketReader(io.BytesIO()).receive()


@pytest.mark.parametrize("bad_type", [PacketType.NO_PKT, PacketType.ACK, PacketType.TRADED])
def test_receive_rejects_non_client_types(bad_type):
    reader = PacketReader(io.BytesIO(frame(bad_type, 5)))
    with pytest.raises(ProtocolError):
        reader.receive()


def test_receive_accepts_cancel():
    payload = CancelInfo(3).pack()
    header, body = PacketReader(io.BytesIO(frame(PacketType.CANCEL, 5, payload))).receive()
    assert header.type == PacketType.CANCEL
    assert CancelInfo.unpack(body).order == 3


def test_receive_rejects_stale_timestamp():
    data = frame(PacketType.STATUS, 10) + frame(PacketType.STATUS, 10)
    reader = PacketReader(io.BytesIO(data))
    header, _ = reader.receive()
    assert header.timestamp_sec == 10
    with pytest.raises(ProtocolError):
        reader.receive()


def test_receive_rejects_zero_timestamp():
    with pytest.raises(ProtocolError):
        PacketReader(io.BytesIO(frame(PacketType.STATUS, 0))).receive()


def test_receive_increasing_timestamps():
    data = frame(PacketType.STATUS, 10) + frame(PacketType.STATUS, 11)
    reader = PacketReader(io.BytesIO(data))
    stamps = [reader.receive()[0].timestamp_sec for _ in range(2)]
    assert stamps == [10, 11]


def test_receive_truncated_payload():
    data = PacketHeader(int(PacketType.BUY), 8, 5, 0).pack() + b"\x00\x01"
    with pytest.raises(ProtocolError):
        PacketReader(io.BytesIO(data)).receive()


def test_receive_truncated_header():
    with pytest.raises(ProtocolError):
        PacketReader(io.BytesIO(b"\x01\x00")).receive()