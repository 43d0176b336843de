"""Pydantic models describing the stored feature document."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

Features = dict[str, Any]


class ThrottleConfig(BaseModel):
    """Percentage rollout rule stored under ``throttles.<key>``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    whitelist: frozenset[int] = Field(
        default_factory=frozenset,
        description="Hash buckets that are always allowed through the throttle",
    )
    probability: float = Field(
        default=0.0,
        allow_inf_nan=False,
        description="Percentage of buckets allowed through, truncated to 2dp",
    )
    disabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("disabled", "forceRejectAll"),
        description="Rejects every request when set, whitelist included",
    )

    @field_validator("whitelist", mode="before")
    @classmethod
    def null_whitelist_is_empty(cls, value: Any) -> Any:
        return frozenset() if value is None else value

    @property
    def threshold(self) -> int:
        """Probability in hundredths of a percent: ``floor(probability * 100)``."""

        return math.floor(self.probability * 100)


class StoreDocument(BaseModel):
    """The record holding every feature flag and throttle of one client."""

    model_config = ConfigDict(extra="ignore")

    features: Features = Field(default_factory=dict)
    throttles: dict[str, ThrottleConfig] = Field(default_factory=dict)

    @field_validator("features", "throttles", mode="before")
    @classmethod
    def null_section_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


@dataclass(frozen=True)
class ThrottleRule:
    """A throttle config with its integer threshold resolved at refresh time."""

    config: ThrottleConfig
    threshold: int

    @classmethod
    def from_config(cls, config: ThrottleConfig) -> ThrottleRule:
        return cls(config=config, threshold=config.threshold)

    @property
    def disabled(self) -> bool:
        return self.config.disabled

    @property
    def whitelist(self) -> frozenset[int]:
        return self.config.whitelist
