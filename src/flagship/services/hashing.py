"""Deterministic bucketing of throttle inputs."""

from __future__ import annotations

import logging
from typing import BinaryIO, Union

LOGGER = logging.getLogger(__name__)

FNV32_OFFSET_BASIS = 0x811C9DC5
FNV32_PRIME = 0x01000193
BUCKET_COUNT = 100_00
READ_CHUNK_SIZE = 64 * 1024

HashInput = Union[bytes, bytearray, memoryview, str, BinaryIO]


def fnv1a_32(data: bytes, seed: int = FNV32_OFFSET_BASIS) -> int:
    """Fold ``data`` into a 32-bit FNV-1a accumulator starting at ``seed``."""

    value = seed
    for byte in data:
        value ^= byte
        value = (value * FNV32_PRIME) & 0xFFFFFFFF
    return value


def get_hash(key: str, data: HashInput) -> int:
    """Return the bucket in ``[0, 10000)`` for ``data`` under throttle ``key``.

    The key's UTF-8 bytes are hashed first, then every byte of ``data``.  Strings are
    UTF-8 encoded; readable binary streams are consumed to exhaustion.  A read error
    stops consumption and the bytes read so far decide the bucket.
    """

    value = fnv1a_32(key.encode("utf-8"))
    for chunk in _iter_chunks(data):
        value = fnv1a_32(chunk, value)
    return value % BUCKET_COUNT


def _iter_chunks(data: HashInput):
    if isinstance(data, str):
        yield data.encode("utf-8")
        return
    if isinstance(data, (bytes, bytearray, memoryview)):
        yield bytes(data)
        return
    read = getattr(data, "read", None)
    if not callable(read):
        raise TypeError(f"Cannot hash input of type {type(data).__name__}")
    while True:
        try:
            chunk = read(READ_CHUNK_SIZE)
        except OSError as exc:
            LOGGER.debug("Hash input read failed, using bytes read so far: %s", exc)
            return
        if not chunk:
            return
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        yield chunk
