"""JSON and CSV export of a scraped publication."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

from cdpharvest.substack.views import PublicationReport, Subscriber, normalize_tier

logger = logging.getLogger(__name__)

CSV_HEADER = ['Email', 'Tier', 'Subscribe Date', 'Amount Spent']


def write_report(report: PublicationReport, output_dir: str | Path) -> tuple[Path, Path]:
    """Write ``subscribers-<date>.json`` and ``subscribers-<date>.csv``.

    Returns:
        The JSON and CSV paths.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    date = report.scraped_at.date().isoformat()

    json_path = output_dir / f'subscribers-{date}.json'
    payload = report.model_dump(mode='json', by_alias=True, exclude_none=True)
    json_path.write_text(json.dumps(payload, indent=2), encoding='utf-8')
    logger.info(f'Saved: {json_path}')

    csv_path = output_dir / f'subscribers-{date}.csv'
    with open(csv_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f, quoting=csv.QUOTE_ALL)
        writer.writerow(CSV_HEADER)
        for subscriber in report.subscribers:
            writer.writerow([subscriber.email, subscriber.tier, subscriber.subscribe_date, subscriber.amount_spent])
    logger.info(f'Saved: {csv_path}')

    return json_path, csv_path


def read_subscribers_csv(path: str | Path) -> list[Subscriber]:
    """Read subscribers back from a CSV written by ``write_report``.

    Rows without an email are skipped.
    """
    subscribers = []
    with open(path, newline='', encoding='utf-8') as f:
        for row in csv.DictReader(f):
            email = (row.get('Email') or '').strip()
            if not email:
                continue
            subscribers.append(
                Subscriber(
                    email=email,
                    tier=normalize_tier(row.get('Tier')),
                    subscribe_date=(row.get('Subscribe Date') or '').strip(),
                    amount_spent=(row.get('Amount Spent') or '$0.00').strip(),
                )
            )
    return subscribers


def latest_export(exports_dir: str | Path) -> Path | None:
    """Return the newest ``*.csv`` in ``exports_dir`` by file name, or None."""
    exports_dir = Path(exports_dir)
    if not exports_dir.is_dir():
        return None
    files = sorted(exports_dir.glob('*.csv'), key=lambda p: p.name)
    return files[-1] if files else None
