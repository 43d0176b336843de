"""In-memory store used by tests and local development."""

from __future__ import annotations

import copy
from typing import Any

from pydantic import ValidationError

from ..errors import DocumentDecodeError, RecordNotFoundError
from ..models.document import Features, StoreDocument


class InMemoryStore:
    """Holds the raw feature document in a dict.

    ``document=None`` behaves like a missing record.  ``fail_with`` makes every
    following ``load`` raise until it is reset to ``None``.
    """

    def __init__(
        self,
        document: dict[str, Any] | None = None,
        table_name: str = "memory",
        record_name: str = "features",
    ) -> None:
        self.document = copy.deepcopy(document) if document is not None else None
        self.table_name = table_name
        self.record_name = record_name
        self.fail_with: BaseException | None = None
        self.load_count = 0

    async def load(self) -> StoreDocument:
        self.load_count += 1
        raw = self._record()
        try:
            return StoreDocument.model_validate(copy.deepcopy(raw))
        except ValidationError as exc:
            raise DocumentDecodeError(str(exc)) from exc

    async def load_features(self) -> Features:
        return dict(self._record().get("features") or {})

    async def set_feature(self, name: str, value: bool) -> None:
        if self.document is None:
            self.document = {}
        features = self.document.get("features")
        if features is None:
            features = self.document["features"] = {}
        features[name] = bool(value)

    async def remove_feature(self, name: str) -> None:
        if self.document is None:
            return
        (self.document.get("features") or {}).pop(name, None)

    def set_throttle(self, name: str, **config: Any) -> None:
        if self.document is None:
            self.document = {}
        throttles = self.document.get("throttles")
        if throttles is None:
            throttles = self.document["throttles"] = {}
        throttles[name] = config

    def _record(self) -> dict[str, Any]:
        if self.fail_with is not None:
            raise self.fail_with
        if not self.document:
            raise RecordNotFoundError(self.table_name, self.record_name)
        return self.document
