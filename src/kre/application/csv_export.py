"""Write report tables to timestamped CSV files."""

from datetime import datetime
from pathlib import Path

import pandas as pd

from kre.application.report import ReportTable


def csv_filename(prefix: str, now: datetime | None = None) -> str:
    """Return ``<prefix>-YYYYMMDDHHMM.csv``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d%H%M")
    return f"{prefix}-{stamp}.csv"


def export_csv(
    report: ReportTable,
    prefix: str,
    *,
    output_dir: str | Path = ".",
    now: datetime | None = None,
) -> Path:
    """Write headers, body and totals of ``report`` and return the file path."""
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    csv_file = target_dir / csv_filename(prefix, now)

    headers, *rows = report.as_rows()
    df = pd.DataFrame(rows, columns=headers)
    df.to_csv(csv_file, index=False)
    return csv_file
