"""Tests for subscriber analysis."""

from datetime import date

import pytest

from cdpharvest.analysis import (
    analyze,
    format_analysis,
    month_key,
    parse_amount,
    parse_subscribe_date,
    rate,
)
from cdpharvest.substack import Subscriber

TODAY = date(2024, 6, 30)


@pytest.fixture
def subscribers():
    return [
        Subscriber(email="recent-free@example.com", tier="free", subscribe_date="15 Apr 2024"),
        Subscriber(email="old-free@example.com", tier="free", subscribe_date="10 Jan 2024"),
        Subscriber(email="paid@example.com", tier="paid", subscribe_date="5 Jan 2024", amount_spent="$50.00"),
        Subscriber(email="founder@example.com", tier="founding", subscribe_date="20 Jan 2024", amount_spent="US$150.00"),
        Subscriber(email="new-free@example.com", tier="free", subscribe_date="1 Jun 2024"),
        Subscriber(email="undated@example.com", tier="free", subscribe_date="bad date"),
    ]


class TestParsing:

    @pytest.mark.parametrize(
        "raw, expected",
        [("$5.00", 5.0), ("US$1,234.50", 1234.5), ("", 0.0), (None, 0.0), ("free", 0.0)],
    )
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12 Jan 2024", date(2024, 1, 12)),
            ("3 Sept 2024", date(2024, 9, 3)),
            ("7 Mar. 2023", date(2023, 3, 7)),
            ("1 December 2023", date(2023, 12, 1)),
            ("31 Feb 2024", None),
            ("not a date", None),
            ("2024-01-12", None),
            ("", None),
        ],
    )
    def test_parse_subscribe_date(self, raw, expected):
        assert parse_subscribe_date(raw) == expected

    def test_month_key(self):
        assert month_key("12 Jan 2024") == "Jan 2024"
        assert month_key("Jan 2024") is None

    @pytest.mark.parametrize(
        "value, expected",
        [(0.5, "Poor"), (1, "Average"), (2.9, "Average"), (3, "Good"), (5, "Great"), (12, "Great")],
    )
    def test_rate(self, value, expected):
        assert rate(value, 1, 3, 5) == expected


class TestAnalyze:

    def test_overview(self, subscribers):
        report = analyze(subscribers, today=TODAY)
        assert report.total == 6
        assert (report.tiers.free, report.tiers.paid, report.tiers.founding) == (4, 1, 1)
        assert report.conversion_rate == pytest.approx(100 * 2 / 6)
        assert report.founding_percent == pytest.approx(100 / 6)
        assert report.total_revenue == 200.0
        assert report.revenue_per_subscriber == pytest.approx(200 / 6)
        assert [b.rating for b in report.benchmarks] == ["Great", "Great", "Great"]

    def test_growth_by_month(self, subscribers):
        report = analyze(subscribers, today=TODAY)
        assert [(m.month, m.count) for m in report.monthly_growth] == [
            ("Jan 2024", 3),
            ("Apr 2024", 1),
            ("Jun 2024", 1),
        ]
        assert report.best_month.month == "Jan 2024"
        assert report.launch_month == "Jan 2024"

    def test_paying_subscribers(self, subscribers):
        report = analyze(subscribers, today=TODAY)
        assert [s.email for s in report.paying_subscribers] == ["founder@example.com", "paid@example.com"]
        assert [(m.month, m.count) for m in report.paying_by_month] == [("Jan 2024", 2)]
        assert report.paying_at_launch == 2

    def test_conversion_window(self, subscribers):
        report = analyze(subscribers, today=TODAY)
        assert [s.email for s in report.conversion_opportunities] == ["recent-free@example.com"]
        assert report.stale_free_count == 1

    def test_low_conversion_ratings(self):
        subscribers = [Subscriber(email=f"f{i}@example.com") for i in range(199)]
        subscribers.append(Subscriber(email="p@example.com", tier="paid", amount_spent="$5.00"))
        report = analyze(subscribers, today=TODAY)
        assert report.conversion_rate == pytest.approx(0.5)
        assert [b.rating for b in report.benchmarks] == ["Poor", "Poor", "Poor"]

    def test_empty(self):
        report = analyze([], today=TODAY)
        assert report.total == 0
        assert report.conversion_rate == 0.0
        assert report.revenue_per_subscriber == 0.0
        assert report.best_month is None
        assert report.launch_month is None
        assert "KEY INSIGHTS" not in format_analysis(report)


def test_format_analysis(subscribers):
    text = format_analysis(analyze(subscribers, today=TODAY))
    assert text.startswith("OVERVIEW\n")
    assert "Total Subscribers:    6" in text
    assert "Conversion Rate:      33.33%" in text
    assert "Best month: Jan 2024 (3 subscribers)" in text
    assert "Free subscribers from 60-90 days ago: 1" in text
    assert "  recent-free@example.com (joined 15 Apr 2024)" in text
    assert "Free subscribers from 90+ days ago: 1" in text
    assert "100% of paying subscribers (2/2) joined in Jan 2024" in text


def test_key_insights(subscribers):
    report = analyze(subscribers, today=TODAY)
    assert report.opportunity_revenue == 5.0

    text = format_analysis(report)
    insights = text.split("KEY INSIGHTS\n", 1)[1].splitlines()
    assert insights == [
        "1. 100% of paying subscribers (2/2) joined in Jan 2024",
        "   -> Launch/early momentum matters most for conversions",
        "2. Conversion rate (33.33%) is above the 1-3% average",
        "   -> Keep doing what works",
        "3. 1 free subscribers from 60-90 days ago are prime conversion targets",
        "   -> If 10% convert at $50/year = $5 potential revenue",
        "4. Best growth month: Jan 2024 with 3 new subscribers",
        "   -> What did you publish/do that month? Replicate it.",
    ]


@pytest.mark.parametrize(
    "paid, expected",
    [
        (0, "is below the 1-3% average"),
        (2, "is at the 1-3% average"),
        (5, "is above the 1-3% average"),
    ],
)
def test_conversion_insight(paid, expected):
    subscribers = [Subscriber(email=f"p{i}@example.com", tier="paid") for i in range(paid)]
    subscribers += [Subscriber(email=f"f{i}@example.com") for i in range(100 - paid)]
    text = format_analysis(analyze(subscribers, today=TODAY))
    assert expected in text
    if paid == 0:
        assert "Focus on conversion, not just growth" in text
        assert "joined in" not in text
