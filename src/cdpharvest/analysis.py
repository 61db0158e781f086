"""Subscriber analysis: tier mix, conversion, growth by month and conversion targets."""

from __future__ import annotations

import logging
import re
from collections import Counter
from datetime import date, timedelta

from pydantic import BaseModel, Field

from cdpharvest.substack.views import Subscriber, TierBreakdown

logger = logging.getLogger(__name__)

MONTHS = {
    'Jan': 1, 'Feb': 2, 'Mar': 3, 'Apr': 4, 'May': 5, 'Jun': 6,
    'Jul': 7, 'Aug': 8, 'Sep': 9, 'Sept': 9, 'Oct': 10, 'Nov': 11, 'Dec': 12,
}

OPPORTUNITY_MIN_AGE_DAYS = 60
OPPORTUNITY_MAX_AGE_DAYS = 90

# what-if used to price the conversion opportunities
OPPORTUNITY_CONVERSION = 0.1
OPPORTUNITY_ANNUAL_PRICE = 50.0


def parse_amount(raw: str | None) -> float:
    """Parse an amount like ``US$1,234.50`` or ``$5.00``; unparseable values count as 0."""
    cleaned = re.sub(r'[^\d.\-]', '', (raw or '').replace('US$', ''))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_subscribe_date(raw: str | None) -> date | None:
    """Parse the dashboard's ``12 Jan 2024`` format. Returns None if it does not match."""
    parts = (raw or '').split()
    if len(parts) < 3:
        return None
    month = MONTHS.get(parts[1].rstrip('.')) or MONTHS.get(parts[1][:3])
    try:
        return date(int(parts[2]), month, int(parts[0])) if month else None
    except ValueError:
        return None


def month_key(raw: str | None) -> str | None:
    """``12 Jan 2024`` -> ``Jan 2024``."""
    parts = (raw or '').split()
    if len(parts) < 3:
        return None
    return f'{parts[1]} {parts[2]}'


def _month_sort_key(key: str) -> tuple[int, int]:
    month, year = key.split(' ', 1)
    try:
        return int(year), MONTHS.get(month, 0)
    except ValueError:
        return 0, MONTHS.get(month, 0)


def rate(value: float, poor: float, average: float, good: float) -> str:
    if value >= good:
        return 'Great'
    if value >= average:
        return 'Good'
    if value >= poor:
        return 'Average'
    return 'Poor'


class Benchmark(BaseModel):
    metric: str
    value: float
    rating: str


class MonthlyCount(BaseModel):
    month: str
    count: int


class AnalysisReport(BaseModel):
    """Derived metrics for one subscriber export."""

    total: int = 0
    tiers: TierBreakdown = Field(default_factory=TierBreakdown)
    conversion_rate: float = 0.0
    founding_percent: float = 0.0
    total_revenue: float = 0.0
    revenue_per_subscriber: float = 0.0
    benchmarks: list[Benchmark] = Field(default_factory=list)
    monthly_growth: list[MonthlyCount] = Field(default_factory=list)
    best_month: MonthlyCount | None = None
    paying_subscribers: list[Subscriber] = Field(default_factory=list)
    paying_by_month: list[MonthlyCount] = Field(default_factory=list)
    conversion_opportunities: list[Subscriber] = Field(default_factory=list)
    stale_free_count: int = 0
    launch_month: str | None = None
    paying_at_launch: int = 0
    opportunity_revenue: float = 0.0


def _percent(part: int | float, whole: int | float) -> float:
    return part / whole * 100 if whole else 0.0


def _counts_by_month(subscribers: list[Subscriber]) -> list[MonthlyCount]:
    counts = Counter(key for s in subscribers if (key := month_key(s.subscribe_date)))
    return [MonthlyCount(month=m, count=c) for m, c in sorted(counts.items(), key=lambda kv: _month_sort_key(kv[0]))]


def analyze(subscribers: list[Subscriber], today: date | None = None) -> AnalysisReport:
    """Compute the analysis report.

    Args:
        subscribers: Rows of one export.
        today: Reference date for the 60-90 day conversion window. Defaults to today.
    """
    today = today or date.today()
    total = len(subscribers)
    tiers = TierBreakdown.from_subscribers(subscribers)

    conversion_rate = _percent(tiers.paying, total)
    founding_percent = _percent(tiers.founding, total)
    total_revenue = sum(parse_amount(s.amount_spent) for s in subscribers)
    revenue_per_subscriber = total_revenue / total if total else 0.0

    benchmarks = [
        Benchmark(metric='Conversion Rate', value=conversion_rate, rating=rate(conversion_rate, 1, 3, 5)),
        Benchmark(metric='Founding %', value=founding_percent, rating=rate(founding_percent, 0.1, 0.5, 1)),
        Benchmark(
            metric='Revenue/Sub',
            value=revenue_per_subscriber,
            rating=rate(revenue_per_subscriber, 0.25, 0.5, 1),
        ),
    ]

    monthly_growth = _counts_by_month(subscribers)
    best_month = None
    for entry in monthly_growth:
        if best_month is None or entry.count > best_month.count:
            best_month = entry

    paying = [s for s in subscribers if s.tier == 'founding'] + [s for s in subscribers if s.tier == 'paid']
    paying.sort(key=lambda s: parse_amount(s.amount_spent), reverse=True)

    window_end = today - timedelta(days=OPPORTUNITY_MIN_AGE_DAYS)
    window_start = today - timedelta(days=OPPORTUNITY_MAX_AGE_DAYS)
    opportunities = []
    stale_free = 0
    for subscriber in subscribers:
        if subscriber.tier != 'free':
            continue
        joined = parse_subscribe_date(subscriber.subscribe_date)
        if joined is None:
            continue
        if window_start <= joined <= window_end:
            opportunities.append(subscriber)
        if joined <= window_start:
            stale_free += 1

    launch_month = monthly_growth[0].month if monthly_growth else None
    paying_at_launch = sum(1 for s in paying if month_key(s.subscribe_date) == launch_month) if launch_month else 0

    logger.debug(f'Analyzed {total} subscribers ({tiers.paying} paying)')
    return AnalysisReport(
        total=total,
        tiers=tiers,
        conversion_rate=conversion_rate,
        founding_percent=founding_percent,
        total_revenue=total_revenue,
        revenue_per_subscriber=revenue_per_subscriber,
        benchmarks=benchmarks,
        monthly_growth=monthly_growth,
        best_month=best_month,
        paying_subscribers=paying,
        paying_by_month=_counts_by_month(paying),
        conversion_opportunities=opportunities,
        stale_free_count=stale_free,
        launch_month=launch_month,
        paying_at_launch=paying_at_launch,
        opportunity_revenue=len(opportunities) * OPPORTUNITY_CONVERSION * OPPORTUNITY_ANNUAL_PRICE,
    )


def format_analysis(report: AnalysisReport) -> str:
    """Render the report as plain text."""
    total = report.total
    tiers = report.tiers
    lines = [
        'OVERVIEW',
        f'Total Subscribers:    {total}',
        f'  - Free:             {tiers.free} ({_percent(tiers.free, total):.1f}%)',
        f'  - Paid:             {tiers.paid} ({_percent(tiers.paid, total):.1f}%)',
        f'  - Founding:         {tiers.founding} ({_percent(tiers.founding, total):.1f}%)',
        '',
        f'Conversion Rate:      {report.conversion_rate:.2f}%',
        f'Total Revenue:        ${report.total_revenue:.2f}',
        f'Revenue per Sub:      ${report.revenue_per_subscriber:.2f}',
        '',
        'BENCHMARK',
    ]
    lines += [f'{b.metric:<18} {b.value:>6.2f} -> {b.rating}' for b in report.benchmarks]

    lines += ['', 'GROWTH BY MONTH']
    lines += [f'{m.month:<10} {m.count:>4} {"#" * round(m.count / 10)}' for m in report.monthly_growth]
    if report.best_month:
        lines.append(f'Best month: {report.best_month.month} ({report.best_month.count} subscribers)')

    lines += ['', 'PAYING SUBSCRIBERS']
    lines += [
        f'{s.tier:<10} {s.subscribe_date:<12} ${parse_amount(s.amount_spent):>7.2f} {s.email}'
        for s in report.paying_subscribers
    ]
    lines += [f'{m.month}: {m.count} paying subscriber(s)' for m in report.paying_by_month]

    lines += [
        '',
        'CONVERSION OPPORTUNITIES',
        f'Free subscribers from {OPPORTUNITY_MIN_AGE_DAYS}-{OPPORTUNITY_MAX_AGE_DAYS} days ago: '
        f'{len(report.conversion_opportunities)}',
    ]
    lines += [f'  {s.email} (joined {s.subscribe_date})' for s in report.conversion_opportunities[:10]]
    lines.append(f'Free subscribers from {OPPORTUNITY_MAX_AGE_DAYS}+ days ago: {report.stale_free_count}')

    if total:
        lines += ['', 'KEY INSIGHTS']
        lines += _insights(report)

    return '\n'.join(lines)


def _insights(report: AnalysisReport) -> list[str]:
    insights = []
    paying = len(report.paying_subscribers)
    if report.launch_month and paying:
        share = _percent(report.paying_at_launch, paying)
        insights.append([
            f'{share:.0f}% of paying subscribers ({report.paying_at_launch}/{paying}) '
            f'joined in {report.launch_month}',
            'Launch/early momentum matters most for conversions',
        ])

    conversion = report.conversion_rate
    position = 'below' if conversion < 1 else 'at' if conversion < 3 else 'above'
    insights.append([
        f'Conversion rate ({conversion:.2f}%) is {position} the 1-3% average',
        'Focus on conversion, not just growth' if conversion < 1 else 'Keep doing what works',
    ])

    opportunities = len(report.conversion_opportunities)
    insights.append([
        f'{opportunities} free subscribers from {OPPORTUNITY_MIN_AGE_DAYS}-{OPPORTUNITY_MAX_AGE_DAYS} days ago '
        f'are prime conversion targets',
        f'If {OPPORTUNITY_CONVERSION:.0%} convert at ${OPPORTUNITY_ANNUAL_PRICE:.0f}/year = '
        f'${report.opportunity_revenue:.0f} potential revenue',
    ])

    if report.best_month:
        insights.append([
            f'Best growth month: {report.best_month.month} with {report.best_month.count} new subscribers',
            'What did you publish/do that month? Replicate it.',
        ])

    lines = []
    for number, (finding, advice) in enumerate(insights, start=1):
        lines += [f'{number}. {finding}', f'   -> {advice}']
    return lines
