"""
Tensor Codec

Native binary layout for numpy arrays. The array's contiguous backing bytes
are copied verbatim behind a small self-describing header, so numeric data
never goes through the generic object serializer.

Payload layout (all integers little-endian):

    | dtype_len (u32) | dtype_str | ndim (u32) | shape[ndim] (u64 each) | data_len (u64) | data |
"""
import logging
import struct
from typing import Any, Tuple

import numpy as np

from sharedbox.core.exceptions import MalformedValueError, UnsupportedTypeError
from sharedbox.defaults.constants import Marker, TensorConstants

logger = logging.getLogger(__name__)

_DTYPE_LEN = struct.Struct(TensorConstants.DTYPE_LEN_FORMAT)
_NDIM = struct.Struct(TensorConstants.NDIM_FORMAT)
_EXTENT = struct.Struct(TensorConstants.EXTENT_FORMAT)


def is_tensor(value: Any) -> bool:
    """
    Return True if *value* is a plain numpy array with a natively supported dtype kind.

    ndarray subclasses (masked arrays, matrices) carry state the tensor
    layout cannot hold and are left to the opaque serializer.
    """
    return type(value) is np.ndarray and value.dtype.kind in TensorConstants.SUPPORTED_KINDS


def dtype_string(dtype: np.dtype) -> str:
    """
    Render *dtype* as ``<endian><kind><itemsize>``, e.g. ``<f8`` or ``<b1``.

    Raises:
        UnsupportedTypeError: If the dtype kind is not encoded natively
    """
    if dtype.kind not in TensorConstants.SUPPORTED_KINDS:
        raise UnsupportedTypeError(str(dtype), "dtype kind not supported by the tensor codec")
    return f"{TensorConstants.ENDIAN_CHAR}{dtype.kind}{dtype.itemsize}"


class TensorCodec:
    """
    Encodes numpy arrays to the tensor payload and back.

    Encoding produces ``[Marker.TENSOR] + payload``; decoding expects the
    payload only (the marker is consumed by :class:`ValueCodec`).
    """

    def encode(self, array: np.ndarray) -> bytes:
        """
        Encode *array* to marker + tensor payload.

        Non-contiguous arrays are made C-contiguous and big-endian arrays are
        byte-swapped first, so the written data always matches the ``<``
        dtype string. The input array is never modified.

        Args:
            array: numpy array with a dtype kind in ``iufcb``

        Returns:
            bytes: Encoded value

        Raises:
            UnsupportedTypeError: If the dtype kind is not supported
        """
        dtype_str = dtype_string(array.dtype)
        shape = array.shape

        # ascontiguousarray promotes 0-d input to 1-d, so shape is taken above
        data = np.ascontiguousarray(array, dtype=np.dtype(dtype_str))

        dtype_raw = dtype_str.encode('ascii')
        parts = [
            bytes((Marker.TENSOR,)),
            _DTYPE_LEN.pack(len(dtype_raw)),
            dtype_raw,
            _NDIM.pack(len(shape)),
        ]
        parts.extend(_EXTENT.pack(extent) for extent in shape)
        parts.append(_EXTENT.pack(data.nbytes))
        parts.append(data.tobytes(order='C'))
        return b''.join(parts)

    def decode(self, payload: bytes) -> np.ndarray:
        """
        Decode a tensor payload (marker already stripped).

        The returned array owns a copy of its data, it never aliases
        *payload*.

        Args:
            payload: Tensor payload bytes

        Returns:
            np.ndarray: Reconstructed array with the declared dtype and shape

        Raises:
            MalformedValueError: If the payload is truncated or inconsistent
            UnsupportedTypeError: If the declared dtype kind is not supported
        """
        view = memoryview(payload)
        offset = 0

        (dtype_len,), offset = _unpack(_DTYPE_LEN, view, offset, "dtype_len")
        dtype_raw, offset = _take(view, offset, dtype_len, "dtype_str")
        dtype_str = _parse_dtype_string(dtype_raw)

        (ndim,), offset = _unpack(_NDIM, view, offset, "ndim")
        shape = []
        for axis in range(ndim):
            (extent,), offset = _unpack(_EXTENT, view, offset, f"shape[{axis}]")
            shape.append(extent)

        (data_len,), offset = _unpack(_EXTENT, view, offset, "data_len")
        data, offset = _take(view, offset, data_len, "data")

        try:
            dtype = np.dtype(dtype_str)
        except TypeError as e:
            raise MalformedValueError(
                f"Invalid tensor dtype string '{dtype_str}'",
                details={"dtype": dtype_str},
                original_exception=e
            )

        try:
            if data_len == 0:
                array = np.empty(0, dtype=dtype)
            else:
                array = np.frombuffer(data, dtype=dtype)
            if ndim != 1 or array.shape != tuple(shape):
                array = array.reshape(tuple(shape))
        except ValueError as e:
            raise MalformedValueError(
                f"Tensor data does not match declared dtype {dtype_str} and shape {tuple(shape)}",
                details={"dtype": dtype_str, "shape": tuple(shape), "data_len": data_len},
                original_exception=e
            )

        return np.array(array, copy=True)


def _unpack(fmt: struct.Struct, view: memoryview, offset: int, field: str) -> Tuple[tuple, int]:
    end = offset + fmt.size
    if end > len(view):
        raise MalformedValueError(
            f"Tensor payload truncated while reading {field}",
            details={"field": field, "offset": offset, "length": len(view)}
        )
    return fmt.unpack_from(view, offset), end


def _take(view: memoryview, offset: int, count: int, field: str) -> Tuple[bytes, int]:
    end = offset + count
    if end > len(view):
        raise MalformedValueError(
            f"Tensor payload truncated while reading {field}: need {count} bytes, "
            f"have {len(view) - offset}",
            details={"field": field, "offset": offset, "length": len(view)}
        )
    return bytes(view[offset:end]), end


def _parse_dtype_string(raw: bytes) -> str:
    try:
        dtype_str = raw.decode('ascii')
    except UnicodeDecodeError as e:
        raise MalformedValueError("Tensor dtype string is not ASCII", original_exception=e)

    if len(dtype_str) < 3 or dtype_str[0] not in '<>|=' or not dtype_str[2:].isdigit():
        raise MalformedValueError(
            f"Invalid tensor dtype string '{dtype_str}'",
            details={"dtype": dtype_str}
        )
    if dtype_str[1] not in TensorConstants.SUPPORTED_KINDS:
        raise UnsupportedTypeError(dtype_str, "dtype kind not supported by the tensor codec")
    return dtype_str
