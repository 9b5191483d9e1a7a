"""Decoder for solc's compressed source maps.

A source map is a ``;``-separated list with one element per instruction.
Each element is ``offset:length:file:jump:modifierDepth``; empty or missing
fields repeat the previous element's value.
"""

from __future__ import annotations

from dataclasses import dataclass

from fuzzscope.core.errors import SourceAnalysisError


@dataclass(frozen=True)
class SourceMapElement:
    """Source range of one instruction."""
    index: int
    offset: int
    length: int
    file_index: int
    jump_type: str = "-"
    modifier_depth: int = 0


def parse_source_map(source_map: str) -> list[SourceMapElement]:
    """Expand a compressed source map into one element per instruction."""
    elements: list[SourceMapElement] = []
    # offset, length, file, jump, modifier depth
    current: list[str] = ["0", "0", "-1", "-", "0"]

    if not source_map:
        return elements

    for index, raw in enumerate(source_map.split(";")):
        fields = raw.split(":")
        if len(fields) > 5:
            raise SourceAnalysisError(f"malformed source map element {index}: {raw!r}")
        for pos, value in enumerate(fields):
            if value:
                current[pos] = value
        try:
            elements.append(
                SourceMapElement(
                    index=index,
                    offset=int(current[0]),
                    length=int(current[1]),
                    file_index=int(current[2]),
                    jump_type=current[3],
                    modifier_depth=int(current[4]),
                )
            )
        except ValueError as e:
            raise SourceAnalysisError(
                f"malformed source map element {index}: {raw!r}"
            ) from e

    return elements
