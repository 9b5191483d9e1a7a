"""Error taxonomy for contract identification and coverage reporting.

Every failure surfaced to callers derives from :class:`FuzzscopeError` and
carries a stable :class:`ErrorCode`, so callers can branch on the code
without matching message text::

    try:
        generate_report(compilations, coverage_maps, "out/coverage")
    except FuzzscopeError as exc:
        log.error("%s: %s", exc.code.value, exc.message)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


# ── Error Codes ──────────────────────────────────────────────────────────────


class ErrorCode(str, Enum):
    """Standard error codes attached to every raised error."""

    INVALID_COMPILATION = "INVALID_COMPILATION"
    SOURCE_ANALYSIS_FAILED = "SOURCE_ANALYSIS_FAILED"
    TEMPLATE_FAILED = "TEMPLATE_FAILED"
    DIRECTORY_CREATION_FAILED = "DIRECTORY_CREATION_FAILED"
    FILE_IO_FAILED = "FILE_IO_FAILED"
    REPORT_FAILED = "REPORT_FAILED"


# ── Exceptions ───────────────────────────────────────────────────────────────


class FuzzscopeError(Exception):
    """Domain error with structured code + message."""

    code: ErrorCode = ErrorCode.REPORT_FAILED

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ):
        if code is not None:
            self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "details": self.details}


class CompilationLoadError(FuzzscopeError):
    """Compiler output could not be turned into a compilation."""

    code = ErrorCode.INVALID_COMPILATION


class SourceAnalysisError(FuzzscopeError):
    """Coverage data could not be mapped onto source lines."""

    code = ErrorCode.SOURCE_ANALYSIS_FAILED


class ReportTemplateError(FuzzscopeError):
    """A report template failed to parse or render."""

    code = ErrorCode.TEMPLATE_FAILED


class ReportDirectoryError(FuzzscopeError):
    """The report output directory could not be created."""

    code = ErrorCode.DIRECTORY_CREATION_FAILED


class ReportWriteError(FuzzscopeError):
    """Opening, writing, closing or publishing a report file failed."""

    code = ErrorCode.FILE_IO_FAILED


class ReportGenerationError(FuzzscopeError):
    """Several report documents failed independently."""

    code = ErrorCode.REPORT_FAILED

    def __init__(self, errors: list[FuzzscopeError]):
        self.errors = list(errors)
        message = "; ".join(f"{e.code.value}: {e.message}" for e in self.errors)
        super().__init__(
            f"could not export report, {len(self.errors)} documents failed: {message}",
            details={"errors": [e.to_dict() for e in self.errors]},
        )
