"""
Value Codec

Marker-framed binary encoding of dictionary values: native tensor layout for
numpy arrays, pluggable object serializer for everything else.
"""
from sharedbox.codec.opaque import (
    JsonSerializer,
    MsgpackSerializer,
    OpaqueCodec,
    PickleSerializer,
    SerializationFormat,
    Serializer,
    get_serializer,
)
from sharedbox.codec.tensor import TensorCodec, dtype_string, is_tensor
from sharedbox.codec.value import ValueCodec, ValueKind, WireFormat

__all__ = [
    # Dispatch
    "ValueCodec",
    "ValueKind",
    "WireFormat",

    # Tensor
    "TensorCodec",
    "dtype_string",
    "is_tensor",

    # Opaque
    "OpaqueCodec",
    "SerializationFormat",
    "Serializer",
    "PickleSerializer",
    "MsgpackSerializer",
    "JsonSerializer",
    "get_serializer",
]
