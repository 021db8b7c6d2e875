"""Wire format of exchange packets: a fixed header followed by a payload."""

from __future__ import annotations

import enum
import struct
import time
from dataclasses import astuple, dataclass
from typing import BinaryIO, ClassVar, Union


class ProtocolError(Exception):
    """Raised when a packet is malformed or out of order."""


class PacketType(enum.IntEnum):
    NO_PKT = 0
    LOGIN = 1
    STATUS = 2
    DEPOSIT = 3
    WITHDRAW = 4
    ESCROW = 5
    RELEASE = 6
    BUY = 7
    SELL = 8
    CANCEL = 9
    ACK = 10
    NACK = 11
    BOUGHT = 12
    SOLD = 13
    POSTED = 14
    CANCELED = 15
    TRADED = 16


class _Record:
    """Fixed-layout record packed in network byte order."""

    _STRUCT: ClassVar[struct.Struct]

    def _pack_fields(self) -> bytes:
        return self._STRUCT.pack(*astuple(self))

    @classmethod
    def _unpack_fields(cls, data: bytes):
        if len(data) != cls._STRUCT.size:
            raise ProtocolError(
                f"{cls.__name__} needs {cls._STRUCT.size} bytes, got {len(data)}"
            )
        return cls(*cls._STRUCT.unpack(data))


@dataclass
class PacketHeader(_Record):
    type: int
    size: int = 0
    timestamp_sec: int = 0
    timestamp_nsec: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!BHII")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "PacketHeader":
        return cls._unpack_fields(data)


@dataclass
class StatusInfo(_Record):
    balance: int = 0
    inventory: int = 0
    bid: int = 0
    ask: int = 0
    last: int = 0
    orderid: int = 0
    quantity: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!7I")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "StatusInfo":
        return cls._unpack_fields(data)


@dataclass
class NotifyInfo(_Record):
    buyer: int = 0
    seller: int = 0
    quantity: int = 0
    price: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!4I")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "NotifyInfo":
        return cls._unpack_fields(data)


@dataclass
class FundsInfo(_Record):
    amount: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!I")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "FundsInfo":
        return cls._unpack_fields(data)


@dataclass
class EscrowInfo(_Record):
    quantity: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!I")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "EscrowInfo":
        return cls._unpack_fields(data)


@dataclass
class OrderInfo(_Record):
    quantity: int = 0
    price: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!II")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "OrderInfo":
        return cls._unpack_fields(data)


@dataclass
class CancelInfo(_Record):
    order: int = 0
    _STRUCT: ClassVar[struct.Struct] = struct.Struct("!I")

    def pack(self) -> bytes:
        return self._pack_fields()

    @classmethod
    def unpack(cls, data: bytes) -> "CancelInfo":
        return cls._unpack_fields(data)


HEADER_SIZE = PacketHeader._STRUCT.size
MAX_PAYLOAD = 0xFFFF

Payload = Union[bytes, _Record, None]


def send_packet(stream: BinaryIO, packet_type: PacketType, payload: Payload = None) -> PacketHeader:
    """Write one timestamped packet to a binary stream and return its header."""
    if payload is None:
        body = b""
    elif isinstance(payload, _Record):
        body = payload.pack()
    else:
        body = bytes(payload)
    if len(body) > MAX_PAYLOAD:
        raise ProtocolError(f"payload of {len(body)} bytes is too large")
    now = time.time_ns()
    header = PacketHeader(
        int(packet_type), len(body), now // 1_000_000_000, now % 1_000_000_000
    )
    stream.write(header.pack() + body)
    flush = getattr(stream, "flush", None)
    if flush is not None:
        flush()
    return header


class PacketReader:
    """Reads client packets, rejecting bad types and stale timestamps."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._last_sec = 0

    def _read_exactly(self, count: int) -> bytes:
        chunks = bytearray()
        while len(chunks) < count:
            chunk = self._stream.read(count - len(chunks))
            if not chunk:
                break
            chunks.extend(chunk)
        return bytes(chunks)

    def receive(self) -> tuple[PacketHeader, bytes]:
        """Return the next header and payload; EOFError at end of input."""
        raw = self._read_exactly(HEADER_SIZE)
        if not raw:
            raise EOFError("connection closed")
        header = PacketHeader.unpack(raw)
        if header.type == PacketType.NO_PKT or header.type > PacketType.CANCEL:
            raise ProtocolError(f"unexpected packet type {header.type}")
        if header.timestamp_sec <= self._last_sec:
            raise ProtocolError("packet timestamp is not later than the previous one")
        self._last_sec = header.timestamp_sec
        payload = self._read_exactly(header.size)
        if len(payload) != header.size:
            raise ProtocolError(
                f"payload truncated: {len(payload)} of {header.size} bytes"
            )
        return header, payload