"""Progress events emitted by the convergent collector."""

from bubus import BaseEvent


class CollectionStartedEvent(BaseEvent[None]):
    """A collection run is about to prime the target view."""

    target_url: str | None = None
    stall_threshold: int


class CollectionProgressEvent(BaseEvent[None]):
    """One sample has been merged into the accumulated set."""

    iteration: int
    accumulated_count: int
    new_count: int
    stall_streak: int


class CollectionConvergedEvent(BaseEvent[None]):
    """The run converged."""

    total: int
    iterations: int
