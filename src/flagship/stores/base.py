"""Interfaces implemented by feature document stores."""

from __future__ import annotations

from typing import Protocol

from ..models.document import Features, StoreDocument


class Store(Protocol):
    """Supplies a full snapshot of features and throttles on demand."""

    async def load(self) -> StoreDocument:
        """Return the current document or raise ``StoreError``."""
        ...


class MutableStore(Store, Protocol):
    """Store that also accepts the single-feature writes used by the CLI."""

    async def load_features(self) -> Features: ...

    async def set_feature(self, name: str, value: bool) -> None: ...

    async def remove_feature(self, name: str) -> None: ...
