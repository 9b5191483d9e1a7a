"""Coverage collection and source-level coverage analysis."""

from fuzzscope.coverage.coverage_maps import ContractCoverageMap, CoverageMaps
from fuzzscope.coverage.source_analysis import (
    SourceAnalysis,
    SourceFileAnalysis,
    SourceLineAnalysis,
    analyze_source_coverage,
)
from fuzzscope.coverage.source_maps import SourceMapElement, parse_source_map

__all__ = [
    "ContractCoverageMap",
    "CoverageMaps",
    "SourceAnalysis",
    "SourceFileAnalysis",
    "SourceLineAnalysis",
    "SourceMapElement",
    "analyze_source_coverage",
    "parse_source_map",
]
