"""Shared data models for compute requests and results."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Union

from pydantic import BaseModel, ConfigDict, Field


class Algorithm(str, Enum):
    RECURSIVE = "recursive"
    ITERATIVE = "iterative"


class Provenance(str, Enum):
    HIT = "hit"
    MISS = "miss"


class ComputeResult(BaseModel):
    """Result of one magic math evaluation.

    ``provenance`` describes how *this* request was served, so it is never
    written to the cache: a cached record is always re-labelled ``hit``.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    input: int
    result: int
    algorithm: Algorithm
    provenance: Provenance = Provenance.MISS

    def to_cache_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"provenance"})

    @classmethod
    def from_cache_payload(cls, payload: Any) -> "ComputeResult":
        record = cls.model_validate(payload)
        return record.model_copy(update={"provenance": Provenance.HIT.value})


class BatchItemError(BaseModel):
    """Per-position failure in a batch."""

    model_config = ConfigDict(frozen=True)

    input: Any
    error: str


BatchItem = Union[ComputeResult, BatchItemError]


class BatchRequest(BaseModel):
    inputs: List[Any] = Field(..., description="Raw values; each is validated independently.")
