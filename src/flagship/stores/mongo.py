"""MongoDB-backed feature document store."""

from __future__ import annotations

import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from pymongo.read_preferences import Nearest

from ..config import Settings
from ..errors import DocumentDecodeError, RecordNotFoundError, StoreError
from ..models.document import Features, StoreDocument

LOGGER = logging.getLogger(__name__)


class MongoStore:
    """Reads and edits the single record that holds every feature and throttle.

    The record is the document of ``collection`` whose ``_id`` is ``record_name``::

        {
            "_id": "features",
            "features": {"newFeature": true},
            "throttles": {"newThrottle": {"whitelist": [10, 3321], "probability": 2.5}}
        }
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        record_name: str,
        region: str | None = None,
    ) -> None:
        if region:
            # Prefer members tagged with the region, fall back to any member.
            collection = collection.with_options(
                read_preference=Nearest(tag_sets=[{"region": region}, {}])
            )
        self._collection = collection
        self._record_name = record_name
        self._owned_client: AsyncIOMotorClient | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, client: AsyncIOMotorClient | None = None
    ) -> MongoStore:
        """Build a store for ``settings``; a client created here is closed by ``close()``."""

        owned = client is None
        if client is None:
            client = AsyncIOMotorClient(settings.mongodb_uri)
        collection = client[settings.mongodb_db][settings.table_name]
        store = cls(collection, settings.record_name, region=settings.region)
        if owned:
            store._owned_client = client
        return store

    @property
    def table_name(self) -> str:
        return self._collection.name

    @property
    def record_name(self) -> str:
        return self._record_name

    def close(self) -> None:
        if self._owned_client is not None:
            self._owned_client.close()
            self._owned_client = None

    async def load(self) -> StoreDocument:
        raw = await self._find_record()
        try:
            return StoreDocument.model_validate(raw)
        except ValidationError as exc:
            raise DocumentDecodeError(
                f"record {self._record_name!r} is not a valid feature document: {exc}"
            ) from exc

    async def load_features(self) -> Features:
        raw = await self._find_record(projection={"features": 1})
        features = raw.get("features")
        return dict(features) if isinstance(features, dict) else {}

    async def set_feature(self, name: str, value: bool) -> None:
        path = self._feature_path(name)
        await self._update({"$set": {path: bool(value)}}, upsert=True)
        LOGGER.info("Feature set", extra={"feature": name, "value": bool(value)})

    async def remove_feature(self, name: str) -> None:
        path = self._feature_path(name)
        await self._update({"$unset": {path: ""}}, upsert=False)
        LOGGER.info("Feature removed", extra={"feature": name})

    async def _find_record(
        self, projection: dict[str, int] | None = None
    ) -> dict[str, Any]:
        try:
            doc = await self._collection.find_one(
                {"_id": self._record_name}, projection=projection
            )
        except PyMongoError as exc:
            raise StoreError(
                f"failed to read record {self._record_name!r}: {exc}"
            ) from exc
        if not doc:
            raise RecordNotFoundError(self.table_name, self._record_name)
        doc = dict(doc)
        doc.pop("_id", None)
        return doc

    async def _update(self, update: dict[str, Any], upsert: bool) -> None:
        try:
            await self._collection.update_one(
                {"_id": self._record_name}, update, upsert=upsert
            )
        except PyMongoError as exc:
            raise StoreError(
                f"failed to update record {self._record_name!r}: {exc}"
            ) from exc

    @staticmethod
    def _feature_path(name: str) -> str:
        if not name or "." in name or name.startswith("$"):
            raise ValueError(f"Invalid feature name: {name!r}")
        return f"features.{name}"
