"""Export duplicate scan results to CSV or JSON."""

import csv
import json

from .display import console
from .models import ScanResult

_FIELDS = ["uid", "original_uid", "fingerprint", "subject"]


def export_duplicates(scan_result: ScanResult, format: str, output_path: str) -> None:
    """Export the duplicates found by a scan to a file.

    Args:
        scan_result: The scan result to export.
        format: Output format, either 'csv' or 'json'.
        output_path: Path to write the output file.
    """
    rows = [
        {
            "uid": dup.uid,
            "original_uid": dup.original_uid,
            "fingerprint": dup.fingerprint,
            "subject": dup.subject,
        }
        for dup in scan_result.duplicates
    ]

    if format == "csv":
        with open(output_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
    elif format == "json":
        report = {
            "mailbox": scan_result.mailbox,
            "uid_validity": scan_result.uid_validity,
            "mode": scan_result.mode.value,
            "scan_date": scan_result.scan_date,
            "total_messages": scan_result.total_messages,
            "unique_messages": scan_result.unique_messages,
            "duplicates": rows,
        }
        with open(output_path, "w") as f:
            json.dump(report, f, indent=2)
    else:
        raise ValueError(f"Unknown export format: {format}")

    console.print(f"Results saved to {output_path}", markup=False, highlight=False)
