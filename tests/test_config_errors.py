"""
Tests for settings, error messages and the extraction quality report.
"""

import pytest

from core.config import Settings, get_settings
from core.errors import (
    USER_MESSAGES,
    AnalysisTimeoutError,
    ExportError,
    ReconciliationError,
    SheetNotFoundError,
    UploadValidationError,
    WorkbookReadError,
    user_message,
)
from core.quality import RowTally


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.max_upload_mb == 10
        assert settings.max_upload_bytes == 10 * 1024 * 1024
        assert settings.analysis_timeout_seconds == 60
        assert settings.slow_analysis_warn_seconds == 50
        assert settings.allowed_extensions == (".xlsx", ".xlsm")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RECON_MAX_UPLOAD_MB", "25")
        monkeypatch.setenv("RECON_ANALYSIS_TIMEOUT_SECONDS", "120")
        monkeypatch.setenv("RECON_LOG_LEVEL", "debug")
        monkeypatch.setenv("RECON_LOG_JSON", "true")

        settings = Settings.from_env()
        assert settings.max_upload_mb == 25
        assert settings.analysis_timeout_seconds == 120
        assert settings.slow_analysis_warn_seconds == 50
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True

    def test_bad_integer_falls_back(self, monkeypatch):
        monkeypatch.setenv("RECON_MAX_UPLOAD_MB", "lots")
        assert Settings.from_env().max_upload_mb == 10

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestUserMessages:
    @pytest.mark.parametrize(
        "error,category",
        [
            (WorkbookReadError("boom"), "unreadable"),
            (SheetNotFoundError("sales"), "sheet_missing"),
            (AnalysisTimeoutError(60), "timeout"),
            (ExportError("empty"), "export"),
            (ReconciliationError("internal detail"), "analysis"),
        ],
    )
    def test_maps_category(self, error, category):
        assert user_message(error) == USER_MESSAGES[category]

    def test_internal_detail_is_hidden(self):
        assert "Traceback" not in user_message(WorkbookReadError("Traceback: zipfile"))

    def test_validation_message_passes_through(self):
        assert user_message(UploadValidationError("파일이 너무 큽니다.")) == "파일이 너무 큽니다."

    def test_unexpected_errors_get_generic_message(self):
        assert user_message(KeyError("x")) == USER_MESSAGES["analysis"]

    def test_all_errors_share_a_base(self):
        for cls in (WorkbookReadError, SheetNotFoundError, UploadValidationError, AnalysisTimeoutError, ExportError):
            assert issubclass(cls, ReconciliationError)


class TestRowTally:
    def test_builds_report(self):
        tally = RowTally("Logistics")
        tally.reject("missing_model", column="E")
        tally.reject("status_filtered", column="S", sample="해외발송대기")
        tally.reject("status_filtered", column="S", sample="출고")
        tally.reject("unparsed_date", column="P", sample="곧")
        report = tally.build(total_rows=10, extracted=6, layout="individual")

        assert report.skipped_rows == 3
        assert report.layout == "individual"
        filtered = next(i for i in report.issues if i.issue_type == "status_filtered")
        assert filtered.count == 2
        assert filtered.percentage == pytest.approx(20.0)
        assert filtered.severity == "info"
        assert filtered.sample_values == ["해외발송대기", "출고"]
        assert "운송중" in filtered.description

        summary = report.summary()
        assert summary["extracted"] == 6
        assert summary["skipped"] == 3
        assert summary["warnings"] == 2
        assert summary["info"] == 1
        assert not report.has_critical_issues

    def test_samples_are_capped(self):
        tally = RowTally("Sales")
        for i in range(20):
            tally.reject("missing_model", column="T", sample=i)
        issue = tally.build(total_rows=20, extracted=0).issues[0]
        assert issue.count == 20
        assert len(issue.sample_values) == RowTally.MAX_SAMPLES

    def test_zero_rows(self):
        report = RowTally("Sales").build(total_rows=0, extracted=0)
        assert report.issues == []
        assert report.skipped_rows == 0
