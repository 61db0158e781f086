"""Substack subscriber scraper built on the convergent collector."""

import logging

from bubus import EventBus

from cdpharvest.collector.service import ConvergentCollector
from cdpharvest.collector.views import CollectorSettings
from cdpharvest.page import PageSession
from cdpharvest.substack.scripts import REVEAL_SCRIPT, STATS_SCRIPT, SUBSCRIBERS_SCRIPT
from cdpharvest.substack.views import PublicationReport, Subscriber, SubstackStats

logger = logging.getLogger(__name__)


class SubstackScraper:
    """Scrapes one publication's subscriber list and stats through a PageSession.

    Example:
        >>> scraper = SubstackScraper('mynewsletter', PageSession(client))
        >>> report = await scraper.scrape()
        >>> report.subscriber_count
    """

    def __init__(
        self,
        publication: str,
        page: PageSession,
        settings: CollectorSettings | None = None,
        event_bus: EventBus | None = None,
    ):
        self.publication = publication
        self.page = page
        self.settings = settings or CollectorSettings()
        self.event_bus = event_bus

    @property
    def base_url(self) -> str:
        return f'https://{self.publication}.substack.com'

    async def scrape_subscribers(self) -> list[Subscriber]:
        """Scroll the subscriber table until it stops growing."""
        logger.info('Scraping subscriber list...')
        collector = ConvergentCollector(
            self.page,
            read_expression=SUBSCRIBERS_SCRIPT,
            reveal_expression=REVEAL_SCRIPT,
            settings=self.settings,
            event_bus=self.event_bus,
        )
        result = await collector.collect(f'{self.base_url}/publish/subscribers')
        subscribers = [Subscriber.from_record(record) for record in result.records]
        logger.info(f'Total subscribers: {len(subscribers)}')
        return subscribers

    async def scrape_stats(self) -> SubstackStats:
        logger.info('Scraping stats...')
        await self.page.navigate(f'{self.base_url}/publish/stats')
        await self.page.sleep(self.settings.navigation_settle)
        metrics = await self.page.evaluate(STATS_SCRIPT)
        stats = SubstackStats.model_validate(metrics or {})
        logger.debug(f'Stats: {stats.model_dump(exclude_none=True)}')
        return stats

    async def scrape(self, include_stats: bool = True) -> PublicationReport:
        """Scrape subscribers, then stats unless ``include_stats`` is False."""
        subscribers = await self.scrape_subscribers()
        stats = await self.scrape_stats() if include_stats else SubstackStats()
        return PublicationReport.build(self.publication, subscribers, stats)
