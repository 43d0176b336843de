from __future__ import annotations

import io

import pytest

from flagship.services.hashing import BUCKET_COUNT, fnv1a_32, get_hash


class BrokenStream(io.RawIOBase):
    """Yields ``payload`` once, then fails like a dropped connection."""

    def __init__(self, payload: bytes) -> None:
        self._payload = payload
        self._sent = False

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if self._sent:
            raise OSError("connection reset")
        self._sent = True
        return self._payload


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (b"", 0x811C9DC5),
        (b"a", 0xE40C292C),
        (b"foobar", 0xBF9CF968),
    ],
)
def test_fnv1a_32_reference_values(data: bytes, expected: int) -> None:
    assert fnv1a_32(data) == expected


def test_known_bucket_for_throttle_input() -> None:
    assert get_hash("someFeature", "an input") == 1898
    assert get_hash("someFeature", b"an input") == 1898
    assert get_hash("otherFeature", "an input") == 4094


def test_key_and_input_are_hashed_as_one_stream() -> None:
    # "someFeatureable" hashes the same however the bytes are split.
    assert get_hash("someFeature", "able") == get_hash("someFeatureab", "le") == 7529


def test_stream_input_matches_bytes_input() -> None:
    payload = b"x" * 200_000
    assert get_hash("k", io.BytesIO(payload)) == get_hash("k", payload)


def test_empty_input_hashes_key_only() -> None:
    assert get_hash("", b"") == 0x811C9DC5 % BUCKET_COUNT == 6261


def test_hash_is_repeatable_and_in_range() -> None:
    buckets = {get_hash("feature", f"user-{i}") for i in range(500)}
    assert all(0 <= bucket < BUCKET_COUNT for bucket in buckets)
    assert get_hash("feature", "user-7") == get_hash("feature", "user-7")


def test_read_error_uses_bytes_read_so_far() -> None:
    assert get_hash("someFeature", BrokenStream(b"an input")) == 1898


def test_unhashable_input_is_rejected() -> None:
    with pytest.raises(TypeError):
        get_hash("someFeature", 42)  # type: ignore[arg-type]
