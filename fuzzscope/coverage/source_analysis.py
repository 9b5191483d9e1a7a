"""Map program-counter coverage onto source lines.

For every compiled contract the source map gives each instruction a byte
range in a source file. An instruction whose range sits within a single
line makes that line *active*; the line's hit counts are the highest counts
of any of its instructions.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from fuzzscope.compilation.disassembler import instruction_offsets
from fuzzscope.compilation.types import Compilation, CompiledContract
from fuzzscope.core.errors import SourceAnalysisError
from fuzzscope.coverage.coverage_maps import CoverageMaps
from fuzzscope.coverage.source_maps import parse_source_map

logger = logging.getLogger(__name__)


# ── Analysis types ───────────────────────────────────────────────────────────


@dataclass
class SourceLineAnalysis:
    """Coverage facts for one source line."""
    index: int
    start: int
    end: int
    contents: str
    is_active: bool = False
    successful_hits: int = 0
    reverted_hits: int = 0

    @property
    def is_covered(self) -> bool:
        return self.successful_hits > 0

    @property
    def is_covered_reverted(self) -> bool:
        return self.reverted_hits > 0


@dataclass
class SourceFileAnalysis:
    """Per-line coverage facts for one source file."""
    path: str
    lines: list[SourceLineAnalysis] = field(default_factory=list)
    # start offset of each line, rebuilt only when ``lines`` grows or shrinks
    _starts: list[int] = field(default_factory=list, init=False, repr=False, compare=False)

    @classmethod
    def from_source(cls, path: str, source: bytes) -> "SourceFileAnalysis":
        analysis = cls(path=path)
        offset = 0
        for index, raw in enumerate(source.splitlines(keepends=True)):
            text = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")
            analysis.lines.append(
                SourceLineAnalysis(index=index, start=offset, end=offset + len(raw), contents=text)
            )
            offset += len(raw)
        analysis._starts = [line.start for line in analysis.lines]
        return analysis

    def line_for_range(self, offset: int, length: int) -> SourceLineAnalysis | None:
        """The line fully containing ``[offset, offset + length)``, if any."""
        if not self.lines or offset < 0 or length <= 0:
            return None
        if len(self._starts) != len(self.lines):
            self._starts = [line.start for line in self.lines]
        pos = bisect.bisect_right(self._starts, offset) - 1
        if pos < 0:
            return None
        line = self.lines[pos]
        if offset + length <= line.end:
            return line
        return None

    def active_line_count(self) -> int:
        return sum(1 for line in self.lines if line.is_active)

    def covered_line_count(self) -> int:
        return sum(
            1
            for line in self.lines
            if line.is_active and (line.is_covered or line.is_covered_reverted)
        )


@dataclass
class SourceAnalysis:
    """Coverage facts for every source file of a set of compilations."""
    files: dict[str, SourceFileAnalysis] = field(default_factory=dict)

    def sorted_files(self) -> list[SourceFileAnalysis]:
        return [self.files[path] for path in sorted(self.files)]

    def active_line_count(self) -> int:
        return sum(f.active_line_count() for f in self.files.values())

    def covered_line_count(self) -> int:
        return sum(f.covered_line_count() for f in self.files.values())


# ── Analyzer ─────────────────────────────────────────────────────────────────


def _read_source(compilation: Compilation, path: str) -> bytes:
    cached = compilation.source_code.get(path)
    if cached is not None:
        return cached
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise SourceAnalysisError(
            f"could not analyze source coverage, failed to read source file {path}: {e}",
            details={"path": path},
        ) from e


def _apply_contract_coverage(
    analysis: SourceAnalysis,
    compilation: Compilation,
    compiled: CompiledContract,
    coverage_maps: CoverageMaps,
    init: bool,
) -> None:
    bytecode = compiled.init_bytecode if init else compiled.runtime_bytecode
    source_map = compiled.init_source_map if init else compiled.runtime_source_map
    if not bytecode or not source_map:
        return

    elements = parse_source_map(source_map)
    pcs = instruction_offsets(bytecode)

    successful: dict[int, int] = {}
    reverted: dict[int, int] = {}
    for cmap in coverage_maps.maps_for(compiled, init):
        for pc, count in cmap.successful_hits.items():
            successful[pc] = successful.get(pc, 0) + count
        for pc, count in cmap.reverted_hits.items():
            reverted[pc] = reverted.get(pc, 0) + count

    for element in elements:
        if element.index >= len(pcs):
            break
        path = compilation.source_path_for_index(element.file_index)
        file_analysis = analysis.files.get(path) if path else None
        if file_analysis is None:
            continue
        line = file_analysis.line_for_range(element.offset, element.length)
        if line is None:
            continue
        pc = pcs[element.index]
        line.is_active = True
        line.successful_hits = max(line.successful_hits, successful.get(pc, 0))
        line.reverted_hits = max(line.reverted_hits, reverted.get(pc, 0))


def analyze_source_coverage(
    compilations: Iterable[Compilation],
    coverage_maps: CoverageMaps,
) -> SourceAnalysis:
    """Build per-file, per-line coverage facts.

    Raises:
        SourceAnalysisError: a source file could not be read or a source
            map is malformed
    """
    compilations = list(compilations)
    analysis = SourceAnalysis()

    for compilation in compilations:
        for path in list(compilation.sources) + compilation.source_list:
            if not path or path in analysis.files:
                continue
            analysis.files[path] = SourceFileAnalysis.from_source(
                path, _read_source(compilation, path)
            )

    for compilation in compilations:
        for _, compiled in compilation.contracts():
            _apply_contract_coverage(analysis, compilation, compiled, coverage_maps, init=True)
            _apply_contract_coverage(analysis, compilation, compiled, coverage_maps, init=False)

    logger.debug(
        "Analyzed %d source files: %d/%d lines covered",
        len(analysis.files),
        analysis.covered_line_count(),
        analysis.active_line_count(),
    )
    return analysis
