"""
Value Codec

Dual-format value protocol. numpy arrays with a supported dtype use the
native tensor layout, everything else goes through the opaque serializer.
The first byte of every encoded value selects the decode path:

    | Offset | Field   | Width    | Notes                                          |
    | 0      | marker  | 1 byte   | 0 = opaque, 1 = tensor, other = legacy opaque  |
    | 1      | payload | variable | format-specific                                |

Data written before the marker convention existed is a bare serializer
payload. Such data is recognized by a first byte other than 0 or 1 and is
handed to the serializer whole, first byte included. An explicit 0 marker is
always stripped. Pickle protocol 2+ payloads start with 0x80, so legacy
pickles never collide with the two markers.
"""
import logging
from enum import Enum
from typing import Any

from sharedbox.codec.opaque import OpaqueCodec, SerializationFormat, Serializer, get_serializer
from sharedbox.codec.tensor import TensorCodec, is_tensor
from sharedbox.core.exceptions import MalformedValueError
from sharedbox.defaults.constants import Marker

logger = logging.getLogger(__name__)


class ValueKind(str, Enum):
    """Classification of a Python value by the codec."""
    TENSOR = "tensor"
    OPAQUE = "opaque"


class WireFormat(str, Enum):
    """Format of an encoded value, as read from its first byte."""
    TENSOR = "tensor"
    OPAQUE = "opaque"
    LEGACY = "legacy"


class ValueCodec:
    """
    Encodes values to marker-framed bytes and back.

    ``encode`` and ``decode`` are pure: no I/O and no mutation of their
    inputs.

    Example:
        >>> import numpy as np
        >>> codec = ValueCodec()
        >>> codec.encode(np.arange(3))[0]
        1
        >>> codec.decode(codec.encode("text"))
        'text'
    """

    def __init__(
        self,
        serializer: Serializer | None = None,
        serialization_format: SerializationFormat = SerializationFormat.PICKLE
    ):
        """
        Args:
            serializer: Serializer for opaque values; overrides serialization_format
            serialization_format: Built-in serializer to use when none is given
        """
        self.tensor_codec = TensorCodec()
        self.opaque_codec = OpaqueCodec(serializer or get_serializer(serialization_format))

    @staticmethod
    def classify(value: Any) -> ValueKind:
        """Return the codec path *value* takes when encoded."""
        return ValueKind.TENSOR if is_tensor(value) else ValueKind.OPAQUE

    def encode(self, value: Any) -> bytes:
        """
        Encode *value*.

        Raises:
            UnsupportedTypeError: If the value is neither a tensor nor serializable
        """
        if self.classify(value) is ValueKind.TENSOR:
            return self.tensor_codec.encode(value)
        return self.opaque_codec.encode(value)

    def decode(self, data: bytes) -> Any:
        """
        Decode bytes produced by :meth:`encode` or by a pre-marker writer.

        Raises:
            MalformedValueError: If *data* is empty or its payload is corrupt
            UnsupportedTypeError: If a tensor declares an unsupported dtype kind
        """
        fmt = self.detect_format(data)
        if fmt is WireFormat.TENSOR:
            return self.tensor_codec.decode(data[1:])
        if fmt is WireFormat.OPAQUE:
            return self.opaque_codec.decode(data[1:])

        logger.debug(f"Decoding legacy unmarked value (first byte 0x{data[0]:02x})")
        return self.opaque_codec.decode(data)

    @staticmethod
    def detect_format(data: bytes) -> WireFormat:
        """
        Return the wire format of *data* from its first byte.

        Raises:
            MalformedValueError: If *data* is empty
        """
        if not data:
            raise MalformedValueError("Empty data cannot be deserialized")

        marker = data[0]
        if marker == Marker.TENSOR:
            return WireFormat.TENSOR
        if marker == Marker.OPAQUE:
            return WireFormat.OPAQUE
        return WireFormat.LEGACY
