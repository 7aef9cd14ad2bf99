"""
Small formatting helpers for analysis reports.

Used by the CLI to print the results table (areas rounded to whole m², German
thousands separators, shares with two decimals).
"""

from __future__ import annotations

from eegshare.domain.models import AnalysisReport, IntersectionResult


def format_area(value_m2: float) -> str:
    """Render square meters like `1.234.567`."""
    return f"{round(value_m2):,}".replace(",", ".")


def one_line(result: IntersectionResult) -> str:
    return (
        f"{result.feature_name}: {format_area(result.intersection_area_m2)} m² "
        f"({result.share_percent:.2f}%) von {format_area(result.total_area_m2)} m²"
    )


def result_lines(report: AnalysisReport) -> list[str]:
    """One line per result plus a closing total line (empty for an empty result set)."""
    if not report.results:
        return []
    lines = [one_line(r) for r in report.results]
    lines.append(f"Gesamt: {format_area(report.total_intersection_m2)} m² (100.00%)")
    return lines
