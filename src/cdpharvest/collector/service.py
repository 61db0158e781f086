"""Convergent collector: enumerate an incrementally revealed list of unknown size.

The remote page gives no count and no "end of list" signal, so the collector
samples what is currently rendered, merges it into an ordered set keyed by
identity, triggers a reveal action and repeats until a run of consecutive
samples adds nothing new::

    PRIMING -> SAMPLING <-> REVEALING -> CONVERGED

Example:
    >>> collector = ConvergentCollector(page, READ_SCRIPT, REVEAL_SCRIPT)
    >>> result = await collector.collect('https://example.com/list')
    >>> len(result.records)
"""

import logging
from typing import Any

from bubus import EventBus

from cdpharvest.cdp.exceptions import CDPError
from cdpharvest.collector.events import (
    CollectionConvergedEvent,
    CollectionProgressEvent,
    CollectionStartedEvent,
)
from cdpharvest.collector.views import (
    CollectedRecord,
    CollectionError,
    CollectionResult,
    CollectorPhase,
    CollectorSettings,
    ConvergenceState,
    NotConvergedError,
)
from cdpharvest.page import PageSession

logger = logging.getLogger(__name__)


def parse_read_payload(payload: Any) -> list[CollectedRecord]:
    """Turn the read script's return value into records.

    Accepts ``{"records": [...]}`` or a bare list of entries. Entries without
    an identity key are skipped.

    Raises:
        ValueError: If the payload has neither shape.
    """
    if isinstance(payload, dict):
        entries = payload.get('records')
    else:
        entries = payload

    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValueError(f'Read script returned an unexpected payload: {type(payload).__name__}')

    records = []
    for entry in entries:
        record = CollectedRecord.from_remote(entry)
        if record is not None:
            records.append(record)
    return records


class ConvergentCollector:
    """Runs the sample/reveal loop against one page.

    Transport errors are not retried: they abort the run as a
    ``CollectionError`` naming the phase, and no partial result is returned.

    Attributes:
        page: PageSession used for navigation, reads and reveals.
        read_expression: JavaScript returning the currently rendered records.
        reveal_expression: JavaScript that makes more records render.
        settings: Threshold and settle intervals.
        event_bus: Optional bus that receives progress events.
    """

    def __init__(
        self,
        page: PageSession,
        read_expression: str,
        reveal_expression: str,
        settings: CollectorSettings | None = None,
        event_bus: EventBus | None = None,
    ):
        self.page = page
        self.read_expression = read_expression
        self.reveal_expression = reveal_expression
        self.settings = settings or CollectorSettings()
        self.event_bus = event_bus

    async def collect(self, target_url: str | None = None) -> CollectionResult:
        """Collect every record the page reveals.

        Args:
            target_url: View to navigate to first. When None the current page
                is sampled as-is and no navigation settle is applied.

        Returns:
            The unique records in first-seen order.

        Raises:
            CollectionError: If a navigation, read or reveal fails, or if
                ``max_iterations`` samples pass without convergence (phase SAMPLING).
        """
        settings = self.settings
        accumulated: dict[str, CollectedRecord] = {}
        state = ConvergenceState()
        phase = CollectorPhase.PRIMING

        self._emit(CollectionStartedEvent(target_url=target_url, stall_threshold=settings.stall_threshold))

        try:
            if target_url:
                await self.page.navigate(target_url)
                await self.page.sleep(settings.navigation_settle)

            while True:
                phase = CollectorPhase.SAMPLING
                payload = await self.page.evaluate(self.read_expression)
                before = len(accumulated)
                for record in parse_read_payload(payload):
                    # first occurrence wins; repeats are dropped, never merged
                    if record.identity_key not in accumulated:
                        accumulated[record.identity_key] = record

                state = state.after_sample(len(accumulated))
                new_count = len(accumulated) - before
                logger.debug(
                    f'Sample {state.iteration}: {len(accumulated)} records '
                    f'(+{new_count}, stall {state.stall_streak}/{settings.stall_threshold})'
                )
                self._emit(
                    CollectionProgressEvent(
                        iteration=state.iteration,
                        accumulated_count=state.accumulated_count,
                        new_count=new_count,
                        stall_streak=state.stall_streak,
                    )
                )

                if state.is_converged(settings.stall_threshold):
                    phase = CollectorPhase.CONVERGED
                    break
                if settings.max_iterations is not None and state.iteration >= settings.max_iterations:
                    raise NotConvergedError(state.iteration, len(accumulated))

                phase = CollectorPhase.REVEALING
                reveal = await self.page.evaluate(self.reveal_expression)
                if isinstance(reveal, dict) and reveal.get('ok') is False:
                    logger.debug('Reveal action reported ok=false')
                await self.page.sleep(settings.reveal_settle)

        except (CDPError, ValueError, NotConvergedError) as e:
            logger.error(f'Collection aborted during {phase.value}: {type(e).__name__}: {e}')
            raise CollectionError(phase, e) from e

        logger.info(f'Collection converged with {len(accumulated)} records after {state.iteration} samples')
        self._emit(CollectionConvergedEvent(total=len(accumulated), iterations=state.iteration))
        return CollectionResult(records=list(accumulated.values()), iterations=state.iteration)

    def _emit(self, event) -> None:
        if self.event_bus is not None:
            self.event_bus.dispatch(event)
