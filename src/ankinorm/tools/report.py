"""Report tool - final summary of a normalization run."""

from pathlib import Path

from ankinorm.core.models import RunReport


def format_report(report: RunReport, backup_dir: Path, dry_run: bool = False) -> str:
    """Format the end-of-run summary."""
    lines = [
        "",
        "Normalization complete!",
        f"Total files: {report.total}",
        f"Successfully processed: {report.processed}",
        f"Failed: {report.failed}",
        f"Skipped: {report.skipped}",
    ]
    if not dry_run:
        lines.extend(["", f"Backups were saved to: {backup_dir}"])
    return "\n".join(lines)
