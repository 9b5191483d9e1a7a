"""Compiled artifacts consumed by contract identification and coverage."""

from fuzzscope.compilation.solc_output import load_solc_output, load_solc_output_file
from fuzzscope.compilation.types import (
    CompiledContract,
    CompiledSource,
    Compilation,
    abi_signature,
    extract_metadata,
)

__all__ = [
    "CompiledContract",
    "CompiledSource",
    "Compilation",
    "abi_signature",
    "extract_metadata",
    "load_solc_output",
    "load_solc_output_file",
]
