"""Substack publication dashboard scraping."""

from cdpharvest.substack.scripts import REVEAL_SCRIPT, STATS_SCRIPT, SUBSCRIBERS_SCRIPT
from cdpharvest.substack.service import SubstackScraper
from cdpharvest.substack.views import (
    PublicationReport,
    Subscriber,
    SubstackStats,
    TierBreakdown,
    normalize_tier,
)

__all__ = [
    'SubstackScraper',
    'PublicationReport',
    'Subscriber',
    'SubstackStats',
    'TierBreakdown',
    'normalize_tier',
    'SUBSCRIBERS_SCRIPT',
    'REVEAL_SCRIPT',
    'STATS_SCRIPT',
]
