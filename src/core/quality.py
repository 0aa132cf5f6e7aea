"""
Data quality reporting for workbook extraction.

Rows that cannot become records are skipped, never fatal. This module
keeps a tally of what was skipped and why, so the dashboard can show it
and the logs can explain a surprising count.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any


# Issue types that drop the row; the others only flag a cell
ROW_SKIPPING_ISSUES = {"missing_model", "missing_year", "status_filtered"}


@dataclass
class DataQualityIssue:
    """A single kind of rejected or suspicious row found in a file."""

    column: str
    issue_type: str  # e.g. "missing_model", "status_filtered", "header_mismatch"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary of one extraction pass over one workbook sheet."""

    source_name: str
    total_rows: int
    extracted_records: int = 0
    layout: str | None = None
    issues: list[DataQualityIssue] = field(default_factory=list)
    status_counts: dict[str, int] = field(default_factory=dict)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def info_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "info"]

    @property
    def has_critical_issues(self) -> bool:
        return any(i.severity == "critical" for i in self.issues)

    @property
    def skipped_rows(self) -> int:
        return sum(i.count for i in self.issues if i.issue_type in ROW_SKIPPING_ISSUES)

    def summary(self) -> dict:
        """Return a summary dict for display and log lines."""
        return {
            "source": self.source_name,
            "layout": self.layout,
            "total_rows": self.total_rows,
            "extracted": self.extracted_records,
            "skipped": self.skipped_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len(self.info_issues),
        }


class RowTally:
    """
    Collects row rejections while a loader walks a sheet.

    Usage:
        tally = RowTally("Logistics")
        tally.reject("missing_model", column="E", sample=7)
        report = tally.build(total_rows=120, extracted=97)
    """

    DESCRIPTIONS = {
        "missing_model": "{count:,} rows without a model name",
        "missing_year": "{count:,} rows without a model year",
        "status_filtered": "{count:,} rows with a status other than 운송중 / VPC입고",
        "unparsed_date": "{count:,} delivery dates couldn't be parsed",
        "header_mismatch": "Header cells missing at {count:,} mapped columns",
    }

    SEVERITIES = {
        "missing_model": "warning",
        "missing_year": "warning",
        "status_filtered": "info",
        "unparsed_date": "warning",
        "header_mismatch": "warning",
    }

    MAX_SAMPLES = 5

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._counts: Counter[tuple[str, str]] = Counter()
        self._samples: dict[tuple[str, str], list[Any]] = {}
        self.status_counts: Counter[str] = Counter()

    def reject(self, issue_type: str, column: str, sample: Any = None):
        """Count one rejected row (or one suspicious cell)."""
        key = (issue_type, column)
        self._counts[key] += 1
        if sample is not None:
            samples = self._samples.setdefault(key, [])
            if len(samples) < self.MAX_SAMPLES:
                samples.append(sample)

    def count_status(self, status: str):
        self.status_counts[status or "(빈값)"] += 1

    @property
    def rejected(self) -> int:
        return sum(self._counts.values())

    def build(self, total_rows: int, extracted: int, layout: str | None = None) -> DataQualityReport:
        issues = []
        for (issue_type, column), count in self._counts.items():
            pct = (count / total_rows) * 100 if total_rows else 0.0
            issues.append(
                DataQualityIssue(
                    column=column,
                    issue_type=issue_type,
                    severity=self.SEVERITIES.get(issue_type, "warning"),
                    count=count,
                    percentage=pct,
                    sample_values=self._samples.get((issue_type, column), []),
                    description=self.DESCRIPTIONS.get(
                        issue_type, "{count:,} rows skipped"
                    ).format(count=count),
                )
            )

        return DataQualityReport(
            source_name=self.source_name,
            total_rows=total_rows,
            extracted_records=extracted,
            layout=layout,
            issues=issues,
            status_counts=dict(self.status_counts),
        )
