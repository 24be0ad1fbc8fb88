"""
AMANDA message encoding and decoding.

Every message has an 8-byte header followed by a variable-length body.
All multi-byte fields are big-endian (network order):

Offset  Size  Field        Description
------  ----  -----        -----------
0       2     magic        b"AM"
2       1     version      Protocol version (2)
3       1     kind         MessageKind
4       4     body_size    Body length in bytes
8+      var   body         Kind-specific payload

Bodies:

REQUEST        entity_kind u8 | start u32 | end u32 | name
MULTI_REQUEST  entity_kind u8 | start u32 | end u32 | name*
RESULT_SET     owner_index i16 [| value_type u8 | count u16 | record*]
ERROR          error_code u8 | text
UNKNOWN_DP     text

A name is a u8 length followed by ASCII bytes; a text is a u16 length
followed by UTF-8 bytes. A record is the typed value followed by a u32
timestamp. A RESULT_SET whose owner index is negative marks the end of the
stream for the whole request and carries nothing else.
"""

import struct
from enum import IntEnum
from typing import Iterable, Optional, Sequence

from dcsclient.types import DCSValue, EntityKind, ValueType

from .constants import (
    END_OF_STREAM_INDEX,
    HEADER_MAGIC,
    HEADER_SIZE,
    MAX_BODY_SIZE,
    MAX_NAME_LENGTH,
    MAX_REQUEST_BODY_SIZE,
    MAX_VALUES_PER_SET,
    PROTOCOL_VERSION,
)

_HEADER = struct.Struct(">2sBBI")
_REQUEST_PREFIX = struct.Struct(">BII")
_RESULT_PREFIX = struct.Struct(">hBH")
_OWNER_INDEX = struct.Struct(">h")
_TEXT_LENGTH = struct.Struct(">H")


class MessageKind(IntEnum):
    """Message type tag (header byte 3)."""

    REQUEST = 1
    RESULT_SET = 3
    ERROR = 4
    UNKNOWN_DP = 5
    MULTI_REQUEST = 7


class MessageError(ValueError):
    """Raised when a message cannot be encoded or decoded."""


# =============================================================================
# Field helpers
# =============================================================================


def _encode_name(name: str) -> bytes:
    if not name:
        raise MessageError("Request name is empty")
    try:
        raw = name.encode("ascii")
    except UnicodeEncodeError:
        raise MessageError(f"Request name is not ASCII: {name!r}")
    if len(raw) > MAX_NAME_LENGTH:
        raise MessageError(f"Request name too long: {len(raw)} > {MAX_NAME_LENGTH}")
    return bytes([len(raw)]) + raw


def _check_time(value: int, field: str) -> int:
    if not 0 <= value <= 0xFFFFFFFF:
        raise MessageError(f"{field} out of range: {value}")
    return value


def _encode_text(text: str) -> bytes:
    raw = text.encode("utf-8")[:0xFFFF]
    return _TEXT_LENGTH.pack(len(raw)) + raw


def _decode_text(body: bytes, offset: int) -> tuple[str, int]:
    if offset + 2 > len(body):
        raise MessageError("Text length field truncated")
    (length,) = _TEXT_LENGTH.unpack_from(body, offset)
    offset += 2
    if offset + length > len(body):
        raise MessageError(f"Text truncated: need {length} bytes, have {len(body) - offset}")
    return body[offset : offset + length].decode("utf-8", errors="replace"), offset + length


def _decode_names(body: bytes, offset: int) -> list[str]:
    names = []
    while offset < len(body):
        length = body[offset]
        offset += 1
        if length == 0 or offset + length > len(body):
            raise MessageError("Request name truncated")
        names.append(body[offset : offset + length].decode("ascii", errors="replace"))
        offset += length
    return names


# =============================================================================
# Header
# =============================================================================


def encode_header(kind: int, body_size: int) -> bytes:
    """Build the fixed-size header for a message."""
    return _HEADER.pack(HEADER_MAGIC, PROTOCOL_VERSION, kind, body_size)


def decode_header(data: bytes) -> tuple[MessageKind, int]:
    """Parse a header into (kind, body_size).

    Raises:
        MessageError: On short data, bad magic/version, unknown kind or
            oversized body
    """
    if len(data) < HEADER_SIZE:
        raise MessageError(f"Header too short: {len(data)} < {HEADER_SIZE}")

    magic, version, kind, body_size = _HEADER.unpack_from(data, 0)
    if magic != HEADER_MAGIC:
        raise MessageError(f"Bad header magic: {magic!r}")
    if version != PROTOCOL_VERSION:
        raise MessageError(f"Unsupported protocol version {version}")
    try:
        msg_kind = MessageKind(kind)
    except ValueError:
        raise MessageError(f"Unknown message kind {kind}")
    if body_size > MAX_BODY_SIZE:
        raise MessageError(f"Body too large: {body_size} > {MAX_BODY_SIZE}")
    return msg_kind, body_size


# =============================================================================
# Message
# =============================================================================


class Message:
    """A protocol message: kind tag plus the fields that kind carries.

    Build messages with the classmethod constructors (request, multi_request,
    result_set, end_of_stream, error, unknown_dp) and turn raw bytes back into
    messages with decode() or decode_header() + decode_body().

    Example usage:
        msg = Message.multi_request(EntityKind.ALIAS, 1000, 2000)
        for name in ["a", "b", "c"]:
            if not msg.add_request_string(name):
                break
        data = msg.encode()
    """

    def __init__(
        self,
        kind: MessageKind,
        *,
        entity_kind: EntityKind = EntityKind.ALIAS,
        start_time: int = 0,
        end_time: int = 0,
        request_strings: Optional[Sequence[str]] = None,
        owner_index: int = 0,
        value_type: ValueType = ValueType.FLOAT,
        values: Optional[Sequence[DCSValue]] = None,
        error_code: int = 0,
        error_string: str = "",
    ):
        self.kind = kind
        self.entity_kind = entity_kind
        self.start_time = start_time
        self.end_time = end_time
        self.request_strings = list(request_strings or [])
        self.owner_index = owner_index
        self.value_type = value_type
        self.values = list(values or [])
        self.error_code = error_code
        self.error_string = error_string

    # ----- Constructors -----

    @classmethod
    def request(cls, entity_kind: EntityKind, start_time: int, end_time: int, name: str) -> "Message":
        """Single-entity query. Raises MessageError if the fields cannot be encoded."""
        _check_time(start_time, "start_time")
        _check_time(end_time, "end_time")
        _encode_name(name)
        return cls(
            MessageKind.REQUEST,
            entity_kind=entity_kind,
            start_time=start_time,
            end_time=end_time,
            request_strings=[name],
        )

    @classmethod
    def multi_request(
        cls, entity_kind: EntityKind, start_time: int, end_time: int, names: Iterable[str] = ()
    ) -> "Message":
        """Batched query, filled with add_request_string().

        Raises MessageError if the time range or any of ``names`` cannot be
        encoded.
        """
        _check_time(start_time, "start_time")
        _check_time(end_time, "end_time")
        msg = cls(MessageKind.MULTI_REQUEST, entity_kind=entity_kind, start_time=start_time, end_time=end_time)
        for name in names:
            if not msg.add_request_string(name):
                raise MessageError(f"Cannot add request string {name!r}")
        return msg

    @classmethod
    def result_set(
        cls, owner_index: int, values: Sequence[DCSValue], value_type: Optional[ValueType] = None
    ) -> "Message":
        """A chunk of values for entry ``owner_index`` of the current request."""
        if value_type is None:
            value_type = values[0].value_type if values else ValueType.FLOAT
        return cls(MessageKind.RESULT_SET, owner_index=owner_index, value_type=value_type, values=values)

    @classmethod
    def end_of_stream(cls) -> "Message":
        """RESULT_SET sentinel: no more results for this request."""
        return cls(MessageKind.RESULT_SET, owner_index=END_OF_STREAM_INDEX)

    @classmethod
    def error(cls, error_code: int, error_string: str) -> "Message":
        return cls(MessageKind.ERROR, error_code=error_code, error_string=error_string)

    @classmethod
    def unknown_dp(cls, error_string: str) -> "Message":
        return cls(MessageKind.UNKNOWN_DP, error_string=error_string)

    # ----- Accessors -----

    @property
    def is_end_of_stream(self) -> bool:
        """True for the RESULT_SET sentinel."""
        return self.kind == MessageKind.RESULT_SET and self.owner_index < 0

    def add_request_string(self, name: str) -> bool:
        """Append a name to a MULTI_REQUEST.

        Returns False (leaving the message unchanged) if the name cannot be
        encoded or would overflow MAX_REQUEST_BODY_SIZE.
        """
        if self.kind != MessageKind.MULTI_REQUEST:
            return False
        try:
            encoded = _encode_name(name)
        except MessageError:
            return False
        if self._request_body_size() + len(encoded) > MAX_REQUEST_BODY_SIZE:
            return False
        self.request_strings.append(name)
        return True

    def _request_body_size(self) -> int:
        return _REQUEST_PREFIX.size + sum(1 + len(s) for s in self.request_strings)

    # ----- Encoding -----

    def encode_body(self) -> bytes:
        if self.kind in (MessageKind.REQUEST, MessageKind.MULTI_REQUEST):
            if self.kind == MessageKind.REQUEST and len(self.request_strings) != 1:
                raise MessageError(f"REQUEST carries exactly one name, got {len(self.request_strings)}")
            body = _REQUEST_PREFIX.pack(int(self.entity_kind), self.start_time, self.end_time)
            return body + b"".join(_encode_name(s) for s in self.request_strings)

        if self.kind == MessageKind.RESULT_SET:
            if self.owner_index < 0:
                return _OWNER_INDEX.pack(self.owner_index)
            if len(self.values) > MAX_VALUES_PER_SET:
                raise MessageError(f"Too many values in one set: {len(self.values)}")
            record = struct.Struct(f">{self.value_type.struct_format}I")
            body = _RESULT_PREFIX.pack(self.owner_index, int(self.value_type), len(self.values))
            try:
                return body + b"".join(record.pack(v.value, v.timestamp) for v in self.values)
            except struct.error as e:
                raise MessageError(f"Cannot encode value as {self.value_type.name}: {e}")

        if self.kind == MessageKind.ERROR:
            return bytes([self.error_code & 0xFF]) + _encode_text(self.error_string)

        if self.kind == MessageKind.UNKNOWN_DP:
            return _encode_text(self.error_string)

        raise MessageError(f"Cannot encode message kind {self.kind}")

    def encode(self) -> bytes:
        """Serialize header and body."""
        body = self.encode_body()
        return encode_header(self.kind, len(body)) + body

    # ----- Decoding -----

    @classmethod
    def decode_body(cls, kind: MessageKind, body: bytes) -> "Message":
        """Build a message of ``kind`` from its body bytes.

        Raises:
            MessageError: If the body does not match the layout for ``kind``
        """
        try:
            return cls._decode_body(kind, body)
        except (struct.error, IndexError) as e:
            raise MessageError(f"Malformed {kind.name} body: {e}")

    @classmethod
    def _decode_body(cls, kind: MessageKind, body: bytes) -> "Message":
        if kind in (MessageKind.REQUEST, MessageKind.MULTI_REQUEST):
            entity, start, end = _REQUEST_PREFIX.unpack_from(body, 0)
            try:
                entity_kind = EntityKind(entity)
            except ValueError:
                raise MessageError(f"Unknown entity kind {entity}")
            names = _decode_names(body, _REQUEST_PREFIX.size)
            if kind == MessageKind.REQUEST and len(names) != 1:
                raise MessageError(f"REQUEST carries exactly one name, got {len(names)}")
            return cls(kind, entity_kind=entity_kind, start_time=start, end_time=end, request_strings=names)

        if kind == MessageKind.RESULT_SET:
            (owner_index,) = _OWNER_INDEX.unpack_from(body, 0)
            if owner_index < 0:
                return cls(kind, owner_index=owner_index)
            _, type_code, count = _RESULT_PREFIX.unpack_from(body, 0)
            try:
                value_type = ValueType(type_code)
            except ValueError:
                raise MessageError(f"Unknown value type {type_code}")
            fmt = f">{value_type.struct_format}I"
            payload = body[_RESULT_PREFIX.size :]
            expected = count * struct.calcsize(fmt)
            if len(payload) != expected:
                raise MessageError(f"Result set size mismatch: {count} values need {expected} bytes, got {len(payload)}")
            values = [DCSValue(ts, val, value_type) for val, ts in struct.iter_unpack(fmt, payload)]
            return cls(kind, owner_index=owner_index, value_type=value_type, values=values)

        if kind == MessageKind.ERROR:
            if not body:
                raise MessageError("ERROR body is empty")
            text, _ = _decode_text(body, 1)
            return cls(kind, error_code=body[0], error_string=text)

        if kind == MessageKind.UNKNOWN_DP:
            text, _ = _decode_text(body, 0)
            return cls(kind, error_string=text)

        raise MessageError(f"Cannot decode message kind {kind}")

    @classmethod
    def decode(cls, data: bytes) -> "Message":
        """Parse a complete message (header + body)."""
        kind, body_size = decode_header(data)
        body = data[HEADER_SIZE:]
        if len(body) != body_size:
            raise MessageError(f"Body size mismatch: header says {body_size}, got {len(body)}")
        return cls.decode_body(kind, body)

    def __repr__(self) -> str:
        if self.kind == MessageKind.RESULT_SET:
            if self.is_end_of_stream:
                return "Message(RESULT_SET, end_of_stream)"
            return f"Message(RESULT_SET, owner={self.owner_index}, values={len(self.values)})"
        if self.kind in (MessageKind.ERROR, MessageKind.UNKNOWN_DP):
            return f"Message({self.kind.name}, code={self.error_code}, {self.error_string!r})"
        return (
            f"Message({self.kind.name}, {self.entity_kind.name}, {self.start_time}..{self.end_time}, "
            f"names={len(self.request_strings)})"
        )
