"""Convergent collection of incrementally revealed lists."""

from cdpharvest.collector.events import (
    CollectionConvergedEvent,
    CollectionProgressEvent,
    CollectionStartedEvent,
)
from cdpharvest.collector.service import ConvergentCollector, parse_read_payload
from cdpharvest.collector.views import (
    CollectedRecord,
    CollectionError,
    CollectionResult,
    CollectorPhase,
    CollectorSettings,
    ConvergenceState,
    NotConvergedError,
)

__all__ = [
    'ConvergentCollector',
    'parse_read_payload',
    'CollectedRecord',
    'CollectionError',
    'CollectionResult',
    'CollectorPhase',
    'CollectorSettings',
    'ConvergenceState',
    'NotConvergedError',
    'CollectionStartedEvent',
    'CollectionProgressEvent',
    'CollectionConvergedEvent',
]
