"""
Unit tests for marker dispatch in the value codec.
"""
import pickle

import msgpack
import numpy as np
import pytest

from sharedbox.codec.opaque import SerializationFormat
from sharedbox.codec.value import ValueCodec, ValueKind, WireFormat
from sharedbox.core.exceptions import MalformedValueError, UnsupportedTypeError


@pytest.fixture
def codec():
    return ValueCodec()


@pytest.mark.unit
class TestFormatSelection:
    """Test which format encode picks."""

    def test_numeric_array_uses_tensor_marker(self, codec):
        assert codec.encode(np.ones(3))[0] == 1

    @pytest.mark.parametrize("value", [
        1, "s", None, [np.ones(2)], np.float32(1.5), np.array(["a"]),
    ], ids=["int", "str", "none", "list-of-array", "numpy-scalar", "str-array"])
    def test_everything_else_uses_opaque_marker(self, codec, value):
        assert codec.encode(value)[0] == 0

    def test_classify(self, codec):
        assert codec.classify(np.zeros((2, 2))) is ValueKind.TENSOR
        assert codec.classify({"a": 1}) is ValueKind.OPAQUE

    @pytest.mark.parametrize("value", [
        0, "", b"\x01", np.array(1), np.zeros(0), {"k": np.arange(3)},
    ])
    def test_marker_is_zero_or_one(self, codec, value):
        """Test encode never emits another marker value."""
        assert codec.encode(value)[0] in (0, 1)


@pytest.mark.unit
class TestDecodeDispatch:
    """Test decode paths selected by the first byte."""

    def test_tensor_round_trip(self, codec, float_matrix):
        decoded = codec.decode(codec.encode(float_matrix))

        assert isinstance(decoded, np.ndarray)
        assert decoded.shape == (2, 3)
        assert decoded.dtype == np.float32
        np.testing.assert_array_equal(decoded, float_matrix)

    def test_opaque_round_trip(self, codec):
        value = {"a": [1, 2], "b": ("x", None)}

        assert codec.decode(codec.encode(value)) == value

    def test_array_nested_in_opaque_value(self, codec):
        """Test arrays inside containers go through the serializer."""
        value = {"weights": np.arange(3)}

        decoded = codec.decode(codec.encode(value))

        np.testing.assert_array_equal(decoded["weights"], np.arange(3))

    def test_masked_array_keeps_mask(self, codec):
        """Test ndarray subclasses go through the serializer intact."""
        value = np.ma.masked_array([1.0, 2.0], mask=[False, True])

        encoded = codec.encode(value)
        decoded = codec.decode(encoded)

        assert encoded[0] == 0
        assert isinstance(decoded, np.ma.MaskedArray)
        np.testing.assert_array_equal(decoded.mask, [False, True])
        assert decoded[0] == 1.0
        assert decoded[1] is np.ma.masked

    def test_scalar_array_round_trip(self, codec):
        decoded = codec.decode(codec.encode(np.array(3.0)))

        assert decoded.shape == ()
        assert decoded == 3.0

    def test_explicit_zero_marker_is_stripped(self, codec):
        """Test a 0x00 marker is not passed to the serializer."""
        data = b"\x00" + pickle.dumps("payload", protocol=pickle.HIGHEST_PROTOCOL)

        assert codec.decode(data) == "payload"

    def test_legacy_unmarked_pickle_is_decoded_whole(self, codec):
        """Test pre-marker data keeps its first byte."""
        legacy = pickle.dumps({"old": True}, protocol=2)
        assert legacy[0] == 0x80

        assert codec.decode(legacy) == {"old": True}

    def test_legacy_protocol_zero_pickle(self, codec):
        """Test an ASCII protocol-0 pickle is read via the legacy path."""
        legacy = pickle.dumps([1, 2], protocol=0)
        assert legacy[0] not in (0, 1)

        assert codec.decode(legacy) == [1, 2]

    def test_empty_data(self, codec):
        with pytest.raises(MalformedValueError, match="Empty data"):
            codec.decode(b"")

    def test_marker_only_tensor(self, codec):
        with pytest.raises(MalformedValueError):
            codec.decode(b"\x01")

    def test_unsupported_tensor_dtype(self, codec):
        """Test a tensor declaring a datetime dtype."""
        payload = (
            b"\x01" + (3).to_bytes(4, 'little') + b"<M8"
            + (1).to_bytes(4, 'little') + (1).to_bytes(8, 'little')
            + (8).to_bytes(8, 'little') + b"\x00" * 8
        )

        with pytest.raises(UnsupportedTypeError):
            codec.decode(payload)

    def test_unpicklable_value(self, codec):
        with pytest.raises(UnsupportedTypeError):
            codec.encode(lambda: None)


@pytest.mark.unit
class TestDetectFormat:
    """Test wire format detection."""

    @pytest.mark.parametrize("data, expected", [
        (b"\x00abc", WireFormat.OPAQUE),
        (b"\x01abc", WireFormat.TENSOR),
        (b"\x80\x04", WireFormat.LEGACY),
        (b"(lp0", WireFormat.LEGACY),
    ])
    def test_detect(self, data, expected):
        assert ValueCodec.detect_format(data) is expected

    def test_detect_empty(self):
        with pytest.raises(MalformedValueError):
            ValueCodec.detect_format(b"")


@pytest.mark.unit
class TestSerializerSelection:
    """Test codec construction options."""

    def test_msgpack_format(self):
        codec = ValueCodec(serialization_format=SerializationFormat.MSGPACK)

        encoded = codec.encode({"a": 1})

        assert encoded == b"\x00" + msgpack.packb({"a": 1}, use_bin_type=True)
        assert codec.decode(encoded) == {"a": 1}

    def test_tensors_ignore_serializer(self, float_matrix):
        """Test tensor bytes do not depend on the opaque serializer."""
        pickled = ValueCodec(serialization_format=SerializationFormat.PICKLE)
        packed = ValueCodec(serialization_format=SerializationFormat.MSGPACK)

        assert pickled.encode(float_matrix) == packed.encode(float_matrix)

    def test_custom_serializer(self):
        """Test an injected serializer object is used."""
        class Upper:
            def serialize(self, value):
                return value.upper().encode()

            def deserialize(self, data):
                return data.decode().lower()

        codec = ValueCodec(serializer=Upper())

        assert codec.encode("abc") == b"\x00ABC"
        assert codec.decode(b"\x00ABC") == "abc"
