"""
Chunked tensor payloads for `RecvBufRespExtra`.

A receive-buffer response carries the raw bytes of a tensor split into one or
more `tensor_content` chunks. These helpers move NumPy arrays in and out of
that representation. Bytes are laid out in C order with the array's native
dtype; the receiver supplies dtype and shape.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from .transport_options_pb2 import RecvBufRespExtra


def encode_tensor_content(array: Any, chunk_size: int = 1 << 20) -> RecvBufRespExtra:
    """
    Split the bytes of `array` into `tensor_content` chunks.

    Parameters
    ----------
    array : array-like
        Tensor value to send.
    chunk_size : int, optional
        Maximum number of bytes per chunk. Must be > 0. Defaults to 1 MiB.

    Returns
    -------
    RecvBufRespExtra
        Message with ``ceil(nbytes / chunk_size)`` chunks (none for an empty
        array).
    """
    chunk_size = int(chunk_size)
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    data = np.ascontiguousarray(array).tobytes()
    msg = RecvBufRespExtra()
    msg.tensor_content.extend(
        data[i:i + chunk_size] for i in range(0, len(data), chunk_size)
    )
    return msg


def decode_tensor_content(
    message: RecvBufRespExtra, dtype: Any, shape: Sequence[int]
) -> np.ndarray:
    """
    Reassemble a tensor from the `tensor_content` chunks of `message`.

    Raises
    ------
    ValueError
        If the total byte count does not match `dtype` and `shape`.
    """
    dtype = np.dtype(dtype)
    shape = tuple(int(d) for d in shape)
    data = b"".join(message.tensor_content)

    expected = dtype.itemsize * int(np.prod(shape, dtype=np.int64))
    if len(data) != expected:
        raise ValueError(
            f"tensor_content holds {len(data)} bytes, expected {expected} "
            f"for dtype={dtype} shape={shape}"
        )
    return np.frombuffer(data, dtype=dtype).reshape(shape).copy()
