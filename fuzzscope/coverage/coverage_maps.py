"""Aggregated program-counter coverage collected during fuzzing.

Hit counts are keyed by the bytecode that executed (init or runtime). The
source analyzer later pairs each map with the compiled contract whose
bytecode it matches.
"""

from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fuzzscope.compilation.types import CompiledContract


@dataclass
class ContractCoverageMap:
    """Hit counts for one executed bytecode."""
    bytecode: bytes
    init: bool = False
    successful_hits: dict[int, int] = field(default_factory=dict)
    reverted_hits: dict[int, int] = field(default_factory=dict)

    def covered_pcs(self) -> set[int]:
        return set(self.successful_hits) | set(self.reverted_hits)

    def matches(self, compiled: CompiledContract) -> bool:
        if self.init:
            return compiled.is_match(self.bytecode, b"")
        return compiled.is_match(b"", self.bytecode)


def _map_key(bytecode: bytes, init: bool) -> str:
    kind = "init" if init else "runtime"
    return f"{kind}:{hashlib.sha256(bytecode).hexdigest()}"


class CoverageMaps:
    """Thread-safe collection of :class:`ContractCoverageMap`."""

    def __init__(self) -> None:
        self._maps: dict[str, ContractCoverageMap] = {}
        self._lock = threading.Lock()

    def update(
        self,
        bytecode: bytes,
        pc: int,
        *,
        init: bool = False,
        reverted: bool = False,
        hits: int = 1,
    ) -> bool:
        """Record *hits* executions of *pc*. Returns True if the pc is new."""
        key = _map_key(bytecode, init)
        with self._lock:
            cmap = self._maps.get(key)
            if cmap is None:
                cmap = self._maps[key] = ContractCoverageMap(bytecode=bytes(bytecode), init=init)
            is_new = pc not in cmap.successful_hits and pc not in cmap.reverted_hits
            counts = cmap.reverted_hits if reverted else cmap.successful_hits
            counts[pc] = counts.get(pc, 0) + hits
            return is_new

    def merge(self, other: CoverageMaps) -> bool:
        """Fold *other* into this collection. Returns True if coverage grew."""
        if other is self:
            return False
        grew = False
        for cmap in other.maps():
            for pc, count in cmap.successful_hits.items():
                grew |= self.update(cmap.bytecode, pc, init=cmap.init, hits=count)
            for pc, count in cmap.reverted_hits.items():
                grew |= self.update(cmap.bytecode, pc, init=cmap.init, reverted=True, hits=count)
        return grew

    def maps(self) -> list[ContractCoverageMap]:
        """Copies of every map, taken under the lock."""
        with self._lock:
            return [
                ContractCoverageMap(
                    bytecode=m.bytecode,
                    init=m.init,
                    successful_hits=dict(m.successful_hits),
                    reverted_hits=dict(m.reverted_hits),
                )
                for m in self._maps.values()
            ]

    def maps_for(self, compiled: CompiledContract, init: bool) -> list[ContractCoverageMap]:
        """Maps of the given code kind whose bytecode *compiled* produced."""
        return [m for m in self.maps() if m.init == init and m.matches(compiled)]

    def unique_pc_count(self) -> int:
        return sum(len(m.covered_pcs()) for m in self.maps())

    def reset(self) -> None:
        with self._lock:
            self._maps.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._maps)
