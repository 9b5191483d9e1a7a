"""Coverage report generator using Jinja2.

Renders one :class:`SourceAnalysis` into ``coverage_report.html`` and
``coverage_report.json``. Both documents are rendered in memory first and
then published together, so a failed run never leaves one document fresh
and the other stale or half-written.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateError, select_autoescape

from fuzzscope.compilation.types import Compilation
from fuzzscope.core.config import Settings, get_settings
from fuzzscope.core.errors import (
    FuzzscopeError,
    ReportDirectoryError,
    ReportGenerationError,
    ReportTemplateError,
    ReportWriteError,
)
from fuzzscope.coverage.coverage_maps import CoverageMaps
from fuzzscope.coverage.source_analysis import SourceAnalysis, analyze_source_coverage
from fuzzscope.reports.formatters import (
    add,
    last_active_index,
    percentage_int,
    percentage_str,
    relative_path,
    sub,
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

HTML_REPORT_NAME = "coverage_report.html"
JSON_REPORT_NAME = "coverage_report.json"

# Reports get the mode a plain open() would give them
_UMASK = os.umask(0)
os.umask(_UMASK)
REPORT_FILE_MODE = 0o666 & ~_UMASK

_HTML_HELPERS = {
    "add": add,
    "relative_path": relative_path,
    "percentage_str": percentage_str,
    "percentage_int": percentage_int,
}
_JSON_HELPERS = {
    "add": add,
    "sub": sub,
    "relative_path": relative_path,
    "last_active_index": last_active_index,
    "percentage_str": percentage_str,
    "percentage_int": percentage_int,
}


def _raise_collected(errors: list[FuzzscopeError]) -> None:
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise ReportGenerationError(errors)


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove temporary report file %s: %s", path, e)


class ReportGenerator:
    """Render and publish HTML + JSON coverage reports."""

    def __init__(
        self,
        template_dir: str | Path | None = None,
        parallel: bool = False,
        decimals: int = 2,
    ) -> None:
        self._jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.parallel = parallel
        self.decimals = decimals

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ReportGenerator":
        settings = settings or get_settings()
        return cls(
            template_dir=settings.report_template_dir or None,
            parallel=settings.report_parallel_render,
            decimals=settings.report_percentage_decimals,
        )

    # ── Templates ────────────────────────────────────────────────────────────

    def load_templates(self) -> dict[str, Template]:
        """Parse both report templates, raising on any parse failure."""
        templates: dict[str, Template] = {}
        errors: list[FuzzscopeError] = []
        for name, helpers in ((HTML_REPORT_NAME, _HTML_HELPERS), (JSON_REPORT_NAME, _JSON_HELPERS)):
            try:
                templates[name] = self._jinja_env.get_template(name, globals=helpers)
            except TemplateError as e:
                errors.append(
                    ReportTemplateError(
                        f"could not export report, failed to parse report template {name}: {e}",
                        details={"template": name},
                    )
                )
        _raise_collected(errors)
        return templates

    def _render(
        self,
        template: Template,
        analysis: SourceAnalysis,
        time_now: datetime,
    ) -> str:
        try:
            return template.render(
                analysis=analysis,
                files=analysis.sorted_files(),
                time_now=time_now,
                decimals=self.decimals,
            )
        except TemplateError as e:
            raise ReportTemplateError(
                f"could not export report, failed to render {template.name}: {e}",
                details={"template": template.name},
            ) from e

    def render(
        self,
        analysis: SourceAnalysis,
        time_now: datetime | None = None,
    ) -> dict[str, str]:
        """Render both documents to strings keyed by file name."""
        templates = self.load_templates()
        time_now = time_now or datetime.now().astimezone()
        return self._render_all(templates, analysis, time_now)

    def _render_all(
        self,
        templates: dict[str, Template],
        analysis: SourceAnalysis,
        time_now: datetime,
    ) -> dict[str, str]:
        rendered: dict[str, str] = {}
        errors: list[FuzzscopeError] = []

        if self.parallel:
            with ThreadPoolExecutor(max_workers=len(templates)) as pool:
                futures = {
                    name: pool.submit(self._render, template, analysis, time_now)
                    for name, template in templates.items()
                }
                for name, future in futures.items():
                    try:
                        rendered[name] = future.result()
                    except ReportTemplateError as e:
                        errors.append(e)
        else:
            for name, template in templates.items():
                try:
                    rendered[name] = self._render(template, analysis, time_now)
                except ReportTemplateError as e:
                    errors.append(e)

        _raise_collected(errors)
        return rendered

    # ── Output ───────────────────────────────────────────────────────────────

    @staticmethod
    def _stage(directory: Path, name: str, content: str) -> Path:
        """Write *content* to a temporary file beside the final report.

        The first failure of open, write or close is the one reported.
        """
        target = directory / name
        try:
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{name}.", suffix=".tmp")
        except OSError as e:
            raise ReportWriteError(
                f"could not export report, failed to open file for writing: {e}",
                details={"path": str(target)},
            ) from e
        tmp_path = Path(tmp_name)

        try:
            handle = os.fdopen(fd, "w", encoding="utf-8")
        except OSError as e:
            os.close(fd)
            _discard(tmp_path)
            raise ReportWriteError(
                f"could not export report, failed to open file for writing: {e}",
                details={"path": str(target)},
            ) from e

        error: Exception | None = None
        try:
            handle.write(content)
        except (OSError, ValueError) as e:
            error = e
        try:
            handle.close()
        except OSError as e:
            if error is None:
                error = e
        if error is None:
            try:
                os.chmod(tmp_path, REPORT_FILE_MODE)
            except OSError as e:
                error = e

        if error is not None:
            _discard(tmp_path)
            raise ReportWriteError(
                f"could not export report, failed to write {name}: {error}",
                details={"path": str(target)},
            ) from error
        return tmp_path

    @staticmethod
    def _backup(directory: Path, name: str) -> Path | None:
        """Copy the currently published *name* aside, if there is one."""
        target = directory / name
        if not target.exists():
            return None
        backup: Path | None = None
        try:
            fd, backup_name = tempfile.mkstemp(dir=directory, prefix=f".{name}.", suffix=".bak")
            os.close(fd)
            backup = Path(backup_name)
            shutil.copy2(target, backup)
        except OSError as e:
            if backup is not None:
                _discard(backup)
            raise ReportWriteError(
                f"could not export report, failed to back up {name}: {e}",
                details={"path": str(target)},
            ) from e
        return backup

    def _publish(self, directory: Path, staged: dict[str, Path]) -> None:
        """Move every staged document into place, or none of them.

        Published reports are copied aside first. When a move fails the
        documents already moved are rolled back to those copies (or removed
        when there was no previous report).
        """
        backups: dict[str, Path | None] = {}
        try:
            for name in staged:
                backups[name] = self._backup(directory, name)
        except ReportWriteError:
            for path in list(staged.values()) + list(backups.values()):
                if path is not None:
                    _discard(path)
            raise

        errors: list[FuzzscopeError] = []
        published: list[str] = []
        for name, tmp_path in staged.items():
            target = directory / name
            try:
                os.replace(tmp_path, target)
            except OSError as e:
                error = ReportWriteError(
                    f"could not export report, failed to publish {name}: {e}",
                    details={"path": str(target)},
                )
                error.__cause__ = e
                errors.append(error)
                break
            published.append(name)

        if errors:
            for name in reversed(published):
                target = directory / name
                backup = backups[name]
                try:
                    if backup is None:
                        target.unlink()
                    else:
                        os.replace(backup, target)
                except OSError as e:
                    errors.append(
                        ReportWriteError(
                            f"could not export report, failed to restore previous {name}: {e}",
                            details={"path": str(target)},
                        )
                    )
            for tmp_path in staged.values():
                _discard(tmp_path)

        for backup in backups.values():
            if backup is not None:
                _discard(backup)
        _raise_collected(errors)

    def export(self, analysis: SourceAnalysis, output_path: str | Path) -> list[Path]:
        """Render *analysis* and write both documents beneath *output_path*.

        Returns the paths of the written documents.
        """
        templates = self.load_templates()
        started = time.monotonic()
        time_now = datetime.now().astimezone()

        directory = Path(output_path)
        logger.info("Report path: %s", directory)

        rendered = self._render_all(templates, analysis, time_now)

        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ReportDirectoryError(
                f"could not export report, failed to create directory {directory}: {e}",
                details={"path": str(directory)},
            ) from e

        staged: dict[str, Path] = {}
        errors: list[FuzzscopeError] = []
        for name, content in rendered.items():
            try:
                staged[name] = self._stage(directory, name, content)
            except ReportWriteError as e:
                errors.append(e)
        if errors:
            for tmp_path in staged.values():
                _discard(tmp_path)
            _raise_collected(errors)

        self._publish(directory, staged)

        logger.info(
            "Coverage report written: %d/%d lines covered",
            analysis.covered_line_count(),
            analysis.active_line_count(),
            extra={
                "report_path": str(directory),
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return [directory / name for name in staged]


def generate_report(
    compilations: Iterable[Compilation],
    coverage_maps: CoverageMaps,
    report_path: str | None = None,
    settings: Settings | None = None,
) -> list[Path]:
    """Analyze source coverage and export the HTML and JSON reports.

    *report_path* defaults to ``Settings.coverage_report_dir``. An empty
    path runs the analysis and writes nothing.

    Returns:
        Paths of the written documents (empty when export is skipped)

    Raises:
        SourceAnalysisError: coverage could not be mapped to source lines
        ReportTemplateError, ReportDirectoryError, ReportWriteError,
        ReportGenerationError: export failed
    """
    settings = settings or get_settings()
    if report_path is None:
        report_path = settings.coverage_report_dir
    analysis = analyze_source_coverage(compilations, coverage_maps)
    if not report_path:
        return []
    return ReportGenerator.from_settings(settings).export(analysis, report_path)
