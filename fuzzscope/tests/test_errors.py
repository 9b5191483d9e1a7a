"""Tests for fuzzscope.core.errors: codes and aggregation."""

from __future__ import annotations

from fuzzscope.core.errors import (
    ErrorCode,
    FuzzscopeError,
    ReportDirectoryError,
    ReportGenerationError,
    ReportTemplateError,
    ReportWriteError,
    SourceAnalysisError,
)


class TestErrorCodes:
    def test_subclass_codes(self):
        assert SourceAnalysisError("x").code == ErrorCode.SOURCE_ANALYSIS_FAILED
        assert ReportTemplateError("x").code == ErrorCode.TEMPLATE_FAILED
        assert ReportDirectoryError("x").code == ErrorCode.DIRECTORY_CREATION_FAILED
        assert ReportWriteError("x").code == ErrorCode.FILE_IO_FAILED

    def test_explicit_code_overrides_default(self):
        err = FuzzscopeError("x", code=ErrorCode.INVALID_COMPILATION)
        assert err.code == ErrorCode.INVALID_COMPILATION

    def test_to_dict(self):
        err = ReportWriteError("disk full", details={"path": "/tmp/r.html"})
        assert err.to_dict() == {
            "code": "FILE_IO_FAILED",
            "message": "disk full",
            "details": {"path": "/tmp/r.html"},
        }
        assert str(err) == "disk full"


class TestReportGenerationError:
    def test_keeps_every_failure(self):
        html = ReportWriteError("html failed")
        json_err = ReportTemplateError("json failed")
        err = ReportGenerationError([html, json_err])
        assert err.errors == [html, json_err]
        assert err.code == ErrorCode.REPORT_FAILED
        assert "html failed" in err.message
        assert "json failed" in err.message
        assert len(err.details["errors"]) == 2
