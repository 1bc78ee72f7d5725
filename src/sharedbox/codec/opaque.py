"""
Opaque Codec

Framing around a general-purpose object serializer. The codec owns only the
leading marker byte; the payload behind it belongs to the serializer.
"""
import json
import logging
import pickle
from enum import IntEnum
from typing import Any, Protocol

import msgpack

from sharedbox.core.exceptions import MalformedValueError, UnsupportedTypeError
from sharedbox.defaults.constants import Marker

logger = logging.getLogger(__name__)


class SerializationFormat(IntEnum):
    """Serialization formats for opaque values."""
    JSON = 1      # Human-readable, JSON types only
    MSGPACK = 2   # Binary, fast, msgpack types only
    PICKLE = 3    # Python-only, any picklable object


class Serializer(Protocol):
    """Interface of the external object serializer."""

    def serialize(self, value: Any) -> bytes: ...

    def deserialize(self, data: bytes) -> Any: ...


class PickleSerializer:
    """pickle with the highest available protocol."""

    def serialize(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    def deserialize(self, data: bytes) -> Any:
        return pickle.loads(data)


class MsgpackSerializer:
    """MessagePack with binary/str separation."""

    def serialize(self, value: Any) -> bytes:
        return msgpack.packb(value, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False)


class JsonSerializer:
    """UTF-8 encoded JSON."""

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value).encode('utf-8')

    def deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode('utf-8'))


_SERIALIZERS = {
    SerializationFormat.JSON: JsonSerializer,
    SerializationFormat.MSGPACK: MsgpackSerializer,
    SerializationFormat.PICKLE: PickleSerializer,
}


def get_serializer(format: SerializationFormat = SerializationFormat.PICKLE) -> Serializer:
    """
    Create the serializer for *format*.

    Args:
        format: Serialization format

    Returns:
        Serializer: New serializer instance

    Raises:
        ValueError: If the format is unknown
    """
    try:
        return _SERIALIZERS[SerializationFormat(format)]()
    except (KeyError, ValueError):
        raise ValueError(f"Unknown serialization format: {format}")


class OpaqueCodec:
    """
    Encodes any value as ``[Marker.OPAQUE] + serializer.serialize(value)``.

    Example:
        >>> codec = OpaqueCodec()
        >>> data = codec.encode({"a": 1})
        >>> data[0]
        0
        >>> codec.decode(data[1:])
        {'a': 1}
    """

    def __init__(self, serializer: Serializer | None = None):
        self.serializer = serializer or PickleSerializer()

    def encode(self, value: Any) -> bytes:
        """
        Serialize *value* behind the opaque marker.

        Raises:
            UnsupportedTypeError: If the serializer cannot handle the value
        """
        try:
            payload = self.serializer.serialize(value)
        except Exception as e:
            raise UnsupportedTypeError(
                type(value).__name__,
                f"not serializable with {type(self.serializer).__name__}",
                original_exception=e
            )
        return bytes((Marker.OPAQUE,)) + payload

    def decode(self, payload: bytes) -> Any:
        """
        Deserialize *payload* (marker already stripped, or a legacy unmarked blob).

        Raises:
            MalformedValueError: If the serializer rejects the payload
        """
        try:
            return self.serializer.deserialize(payload)
        except Exception as e:
            raise MalformedValueError(
                f"Opaque payload could not be deserialized with {type(self.serializer).__name__}",
                details={"length": len(payload)},
                original_exception=e
            )
