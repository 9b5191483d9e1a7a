"""Compiled artifact types shared by contract identification and coverage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


# ── Bytecode metadata ────────────────────────────────────────────────────────


def extract_metadata(bytecode: bytes) -> bytes | None:
    """Return the solc CBOR metadata trailer of *bytecode*, if present.

    solc appends a CBOR map followed by its two-byte big-endian length.
    """
    if len(bytecode) < 2:
        return None
    length = int.from_bytes(bytecode[-2:], "big")
    if length == 0 or length + 2 > len(bytecode):
        return None
    trailer = bytecode[-(length + 2):]
    # CBOR major type 5 (map) with a small number of entries
    if not 0xA0 <= trailer[0] <= 0xB7:
        return None
    return trailer


def _canonical_type(param: dict[str, Any]) -> str:
    type_name = param.get("type", "")
    if type_name.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){type_name[len('tuple'):]}"
    return type_name


def abi_signature(entry: dict[str, Any]) -> str:
    """Render an ABI function entry as ``name(type1,type2)``."""
    inputs = ",".join(_canonical_type(p) for p in entry.get("inputs", []))
    return f"{entry.get('name', '')}({inputs})"


# ── Artifacts ────────────────────────────────────────────────────────────────


@dataclass
class CompiledContract:
    """A single compiled contract."""

    name: str
    abi: list[dict[str, Any]] = field(default_factory=list)
    init_bytecode: bytes = b""
    runtime_bytecode: bytes = b""
    init_source_map: str = ""
    runtime_source_map: str = ""
    method_identifiers: dict[str, str] = field(default_factory=dict)

    def method_signatures(self) -> list[str]:
        """Signatures of every ABI function, in ABI order."""
        signatures: list[str] = []
        for entry in self.abi:
            if entry.get("type", "function") != "function":
                continue
            sig = abi_signature(entry)
            if sig not in signatures:
                signatures.append(sig)
        return signatures

    def is_match(self, init_bytecode: bytes, runtime_bytecode: bytes) -> bool:
        """Whether observed init/runtime bytecode was produced by this contract.

        Metadata hashes decide when both runtime codes carry one. Otherwise
        the observed init code must start with ours (constructor arguments
        are appended), and as a last resort runtime code must be identical.
        """
        can_compare_init = bool(init_bytecode) and bool(self.init_bytecode)
        can_compare_runtime = bool(runtime_bytecode) and bool(self.runtime_bytecode)

        if can_compare_runtime:
            observed = extract_metadata(runtime_bytecode)
            ours = extract_metadata(self.runtime_bytecode)
            if observed is not None and ours is not None:
                return observed == ours

        if can_compare_init:
            if len(self.init_bytecode) <= len(init_bytecode) and init_bytecode.startswith(
                self.init_bytecode
            ):
                return True

        if can_compare_runtime and runtime_bytecode == self.runtime_bytecode:
            return True

        return False


@dataclass
class CompiledSource:
    """Contracts and AST produced for one source file."""

    contracts: dict[str, CompiledContract] = field(default_factory=dict)
    ast: dict[str, Any] = field(default_factory=dict)


@dataclass
class Compilation:
    """One compiler invocation: its sources, artifacts and source-map index."""

    sources: dict[str, CompiledSource] = field(default_factory=dict)
    # file index used by source maps -> source path
    source_list: list[str] = field(default_factory=list)
    # cached file contents; paths missing here are read from disk
    source_code: dict[str, bytes] = field(default_factory=dict)

    def contracts(self) -> Iterator[tuple[str, CompiledContract]]:
        for source_path, source in self.sources.items():
            for contract in source.contracts.values():
                yield source_path, contract

    def source_path_for_index(self, index: int) -> str | None:
        if 0 <= index < len(self.source_list):
            return self.source_list[index]
        return None
