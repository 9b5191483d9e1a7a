"""Shared fixtures for the fuzzscope test suite."""

from __future__ import annotations

from typing import Any

import pytest

from fuzzscope.compilation.types import CompiledContract, CompiledSource, Compilation
from fuzzscope.core.config import get_settings
from fuzzscope.coverage.coverage_maps import CoverageMaps


# ── Mock Solidity Source ─────────────────────────────────────────────────────


COUNTER_SOURCE_PATH = "contracts/Counter.sol"

COUNTER_SOURCE = b"""\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.20;
contract Counter {
    uint256 public count;
    function increment() external {
        count += 1;
    }
    function reset() external { count = 0; }
    function add(uint256 x) external { count += x; }
}
"""

# 1-based line numbers the runtime source map points at, in instruction order
COUNTER_ACTIVE_LINES = [4, 5, 6, 7, 8, 9]
COUNTER_COVERED_LINES = [4, 5, 6, 7]

COUNTER_ABI: list[dict[str, Any]] = [
    {"type": "constructor", "inputs": [], "stateMutability": "nonpayable"},
    {
        "type": "function",
        "name": "count",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {"type": "function", "name": "increment", "inputs": [], "outputs": [], "stateMutability": "nonpayable"},
    {"type": "function", "name": "reset", "inputs": [], "outputs": [], "stateMutability": "nonpayable"},
    {
        "type": "event",
        "name": "Reset",
        "inputs": [{"name": "by", "type": "address", "indexed": True}],
        "anonymous": False,
    },
]


def line_span(source: bytes, line_number: int) -> tuple[int, int]:
    """Byte offset and length of the non-blank text on a 1-based line."""
    lines = source.splitlines(keepends=True)
    start = sum(len(line) for line in lines[: line_number - 1])
    content = lines[line_number - 1].rstrip(b"\r\n")
    stripped = content.lstrip()
    return start + len(content) - len(stripped), len(stripped)


def build_source_map(source: bytes, line_numbers: list[int], file_index: int = 0) -> str:
    """Uncompressed source map with one element per listed line."""
    elements = []
    for number in line_numbers:
        offset, length = line_span(source, number)
        elements.append(f"{offset}:{length}:{file_index}:-")
    return ";".join(elements)


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ── Compilation Fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def counter_runtime_bytecode() -> bytes:
    # one JUMPDEST per active line keeps pc == instruction index
    return b"\x5b" * len(COUNTER_ACTIVE_LINES)


@pytest.fixture
def counter_contract(counter_runtime_bytecode: bytes) -> CompiledContract:
    return CompiledContract(
        name="Counter",
        abi=COUNTER_ABI,
        init_bytecode=bytes.fromhex("6080604052"),
        runtime_bytecode=counter_runtime_bytecode,
        runtime_source_map=build_source_map(COUNTER_SOURCE, COUNTER_ACTIVE_LINES),
        method_identifiers={
            "count()": "06661abd",
            "increment()": "d09de08a",
            "reset()": "d826f88f",
        },
    )


@pytest.fixture
def counter_compilation(counter_contract: CompiledContract) -> Compilation:
    return Compilation(
        sources={COUNTER_SOURCE_PATH: CompiledSource(contracts={"Counter": counter_contract})},
        source_list=[COUNTER_SOURCE_PATH],
        source_code={COUNTER_SOURCE_PATH: COUNTER_SOURCE},
    )


@pytest.fixture
def counter_coverage(counter_runtime_bytecode: bytes) -> CoverageMaps:
    """Coverage where the first four active lines executed."""
    maps = CoverageMaps()
    for pc in range(len(COUNTER_COVERED_LINES)):
        maps.update(counter_runtime_bytecode, pc, hits=pc + 1)
    return maps


# ── solc Output ──────────────────────────────────────────────────────────────


@pytest.fixture
def solc_output() -> dict[str, Any]:
    """Trimmed solc standard JSON output with two sources."""
    return {
        "errors": [
            {
                "severity": "warning",
                "message": "Unused local variable.",
                "formattedMessage": "Warning: Unused local variable.",
            }
        ],
        "sources": {
            "contracts/Token.sol": {"id": 0, "ast": {"nodeType": "SourceUnit"}},
            "contracts/lib/Math.sol": {"id": 1, "ast": {"nodeType": "SourceUnit"}},
        },
        "contracts": {
            "contracts/Token.sol": {
                "Token": {
                    "abi": [
                        {
                            "type": "function",
                            "name": "transfer",
                            "inputs": [
                                {"name": "to", "type": "address"},
                                {"name": "amount", "type": "uint256"},
                            ],
                        }
                    ],
                    "evm": {
                        "bytecode": {"object": "6080604052", "sourceMap": "0:10:0:-"},
                        "deployedBytecode": {
                            "object": "6080604052__$1f0c2dcb7f1f8c8bfef7bb9a6d7c6e9a1d$__5b",
                            "sourceMap": "0:10:0:-;;12:3:1:i",
                        },
                        "methodIdentifiers": {"transfer(address,uint256)": "a9059cbb"},
                    },
                }
            },
            "contracts/lib/Math.sol": {
                "Math": {
                    "abi": [],
                    "evm": {
                        "bytecode": {"object": "0x6001", "sourceMap": ""},
                        "deployedBytecode": {"object": "", "sourceMap": ""},
                        "methodIdentifiers": {},
                    },
                }
            },
        },
    }
