"""Views and models for the convergent collector."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CollectorPhase(str, Enum):
    """States of the collection state machine."""

    PRIMING = 'priming'
    SAMPLING = 'sampling'
    REVEALING = 'revealing'
    CONVERGED = 'converged'


class CollectorSettings(BaseModel):
    """Tuning knobs for a collection run."""

    model_config = ConfigDict(extra='forbid', validate_assignment=True)

    stall_threshold: int = Field(
        default=5,
        ge=1,
        description='Consecutive no-growth samples before the collection counts as complete',
    )
    navigation_settle: float = Field(
        default=5.0,
        ge=0,
        description='Seconds to wait after navigating to the target view',
    )
    reveal_settle: float = Field(
        default=1.5,
        ge=0,
        description='Seconds to wait after each reveal action',
    )
    max_iterations: int | None = Field(
        default=None,
        ge=1,
        description='Optional hard cap on samples; hitting it fails the run. None means no cap',
    )


class CollectedRecord(BaseModel):
    """One element of the collection, immutable once created."""

    model_config = ConfigDict(frozen=True)

    identity_key: str = Field(min_length=1)
    attributes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_remote(cls, entry: Any) -> CollectedRecord | None:
        """Build a record from one ``{identityKey, attributes}`` entry.

        Returns None for entries without a usable identity key. The key is
        used exactly as sent; attribute values are kept as raw strings.
        """
        if not isinstance(entry, dict):
            return None
        key = entry.get('identityKey')
        if not isinstance(key, str) or not key.strip():
            return None

        raw_attributes = entry.get('attributes') or {}
        if not isinstance(raw_attributes, dict):
            raw_attributes = {}
        attributes = {
            str(name): '' if value is None else str(value)
            for name, value in raw_attributes.items()
        }
        return cls(identity_key=key, attributes=attributes)


class ConvergenceState(BaseModel):
    """The only memory carried between iterations of the collection loop."""

    model_config = ConfigDict(frozen=True)

    accumulated_count: int = 0
    stall_streak: int = 0
    iteration: int = 0

    def after_sample(self, accumulated_count: int) -> ConvergenceState:
        """Return the state following a sample that left ``accumulated_count`` records."""
        grew = accumulated_count > self.accumulated_count
        return ConvergenceState(
            accumulated_count=accumulated_count,
            stall_streak=0 if grew else self.stall_streak + 1,
            iteration=self.iteration + 1,
        )

    def is_converged(self, threshold: int) -> bool:
        return self.stall_streak >= threshold


class CollectionResult(BaseModel):
    """Outcome of a collection run."""

    records: list[CollectedRecord] = Field(default_factory=list)
    iterations: int = 0

    def __len__(self) -> int:
        return len(self.records)


class NotConvergedError(Exception):
    """The sample cap was reached while the collection was still growing."""

    def __init__(self, iterations: int, accumulated_count: int):
        super().__init__(
            f'no convergence after {iterations} samples ({accumulated_count} records so far)'
        )
        self.iterations = iterations
        self.accumulated_count = accumulated_count


class CollectionError(Exception):
    """A collection run aborted; names the phase and wraps the underlying error."""

    def __init__(self, phase: CollectorPhase, cause: BaseException):
        super().__init__(f'{phase.value} failed: {type(cause).__name__}: {cause}')
        self.phase = phase
        self.cause = cause

    @property
    def error_kind(self) -> str:
        return type(self.cause).__name__
