"""Models for Substack subscribers and publication stats."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from cdpharvest.collector.views import CollectedRecord

Tier = Literal['free', 'paid', 'founding']


def normalize_tier(raw: str | None) -> Tier:
    """Map the dashboard's tier label to free / paid / founding."""
    value = (raw or '').strip().lower()
    if 'found' in value:
        return 'founding'
    if 'paid' in value:
        return 'paid'
    return 'free'


class Subscriber(BaseModel):
    """One row of the subscriber table."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    email: str
    tier: Tier = 'free'
    subscribe_date: str = Field(default='', alias='subscribeDate')
    amount_spent: str = Field(default='$0.00', alias='amountSpent')

    @property
    def is_paying(self) -> bool:
        return self.tier in ('paid', 'founding')

    @classmethod
    def from_record(cls, record: CollectedRecord) -> Subscriber:
        attributes = record.attributes
        return cls(
            email=record.identity_key,
            tier=normalize_tier(attributes.get('tier')),
            subscribe_date=attributes.get('subscribe_date', ''),
            amount_spent=attributes.get('amount_spent') or '$0.00',
        )


class TierBreakdown(BaseModel):
    free: int = 0
    paid: int = 0
    founding: int = 0

    @classmethod
    def from_subscribers(cls, subscribers: list[Subscriber]) -> TierBreakdown:
        counts = {'free': 0, 'paid': 0, 'founding': 0}
        for subscriber in subscribers:
            counts[subscriber.tier] += 1
        return cls(**counts)

    @property
    def paying(self) -> int:
        return self.paid + self.founding


class SubstackStats(BaseModel):
    """Headline numbers scraped from the publication's stats page."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    total_subscribers: int | None = Field(default=None, alias='totalSubscribers')
    paid_subscribers: int | None = Field(default=None, alias='paidSubscribers')
    free_subscribers: int | None = Field(default=None, alias='freeSubscribers')
    open_rate: float | None = Field(default=None, alias='openRate')
    click_rate: float | None = Field(default=None, alias='clickRate')


class PublicationReport(BaseModel):
    """Everything one scrape run produced."""

    model_config = ConfigDict(populate_by_name=True)

    publication: str
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias='scrapedAt')
    stats: SubstackStats = Field(default_factory=SubstackStats)
    subscriber_count: int = Field(default=0, alias='subscriberCount')
    tier_breakdown: TierBreakdown = Field(default_factory=TierBreakdown, alias='tierBreakdown')
    subscribers: list[Subscriber] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        publication: str,
        subscribers: list[Subscriber],
        stats: SubstackStats | None = None,
        scraped_at: datetime | None = None,
    ) -> PublicationReport:
        return cls(
            publication=publication,
            scraped_at=scraped_at or datetime.now(timezone.utc),
            stats=stats or SubstackStats(),
            subscriber_count=len(subscribers),
            tier_breakdown=TierBreakdown.from_subscribers(subscribers),
            subscribers=subscribers,
        )
