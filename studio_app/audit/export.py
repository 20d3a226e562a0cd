"""Write audit results to timestamped JSON and CSV files."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping, Optional

CSV_COLUMNS = (
    ("user_id", "User ID"),
    ("studio_id", "Studio Profile ID"),
    ("classification", "Classification"),
    ("completeness_score", "Completeness Score"),
    ("reasons", "Reasons"),
    ("recommended_action", "Recommended Action"),
    ("metadata", "Metadata"),
)


@dataclass(frozen=True)
class ExportPaths:
    json_path: Path
    csv_path: Path


def export_timestamp(now: Optional[datetime] = None) -> str:
    """ISO timestamp to the second with ``:`` and ``.`` replaced, safe for filenames."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S")


def _csv_row(record: Mapping) -> dict:
    row = {}
    for key, _title in CSV_COLUMNS:
        value = record.get(key)
        if key == "reasons":
            value = "; ".join(value or ())
        elif key == "metadata":
            value = json.dumps(value or {}, sort_keys=True)
        row[key] = "" if value is None else value
    return row


def export_results(records: Iterable[Mapping], output_dir, *, now: Optional[datetime] = None) -> ExportPaths:
    """Write ``records`` (``to_dict()`` shaped) and return the two file paths."""
    records = list(records)
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = export_timestamp(now)
    json_path = directory / f"audit-results-{stamp}.json"
    csv_path = directory / f"audit-results-{stamp}.csv"

    with json_path.open("w", encoding="utf-8") as handle:
        json.dump(records, handle, indent=2, default=str)

    with csv_path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow([title for _, title in CSV_COLUMNS])
        for record in records:
            row = _csv_row(record)
            writer.writerow([row[key] for key, _ in CSV_COLUMNS])

    return ExportPaths(json_path=json_path, csv_path=csv_path)
