"""Build :class:`Compilation` objects from solc standard-JSON output."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from fuzzscope.compilation.types import CompiledContract, CompiledSource, Compilation
from fuzzscope.core.errors import CompilationLoadError

logger = logging.getLogger(__name__)

# Unlinked library references, e.g. __$1f0c...$__ (40 hex chars wide)
_LINK_PLACEHOLDER = re.compile(r"__\$[0-9a-fA-F]{34}\$__|__[A-Za-z0-9_.:/$-]{36}__")


def decode_bytecode(hex_code: str) -> bytes:
    """Decode a hex bytecode string, zero-filling unlinked library slots."""
    hex_code = hex_code.strip()
    if hex_code.startswith(("0x", "0X")):
        hex_code = hex_code[2:]
    hex_code = _LINK_PLACEHOLDER.sub("0" * 40, hex_code)
    try:
        return bytes.fromhex(hex_code)
    except ValueError as e:
        raise CompilationLoadError(f"invalid bytecode hex: {e}") from e


def load_solc_output(
    output: dict[str, Any] | str,
    source_code: dict[str, bytes] | None = None,
) -> Compilation:
    """Parse solc standard JSON output into a Compilation.

    Args:
        output: Parsed solc output, or its JSON text
        source_code: Optional file contents keyed by source path

    Returns:
        Compilation with contracts, source maps and the source-map file index

    Raises:
        CompilationLoadError: if the output reports errors or is malformed
    """
    if isinstance(output, str):
        try:
            output = json.loads(output)
        except json.JSONDecodeError as e:
            raise CompilationLoadError(f"solc output is not valid JSON: {e}") from e
    if not isinstance(output, dict):
        raise CompilationLoadError("solc output must be a JSON object")

    errors: list[str] = []
    for error in output.get("errors", []):
        message = error.get("formattedMessage", error.get("message", ""))
        if error.get("severity") == "error":
            errors.append(message)
        else:
            logger.debug("solc warning: %s", message)
    if errors:
        raise CompilationLoadError(
            f"compilation reported {len(errors)} errors", details={"errors": errors}
        )

    compilation = Compilation(source_code=dict(source_code or {}))

    # Source ids index the file field of source map elements
    indexed: dict[int, str] = {}
    for source_name, source_data in output.get("sources", {}).items():
        compilation.sources[source_name] = CompiledSource(ast=source_data.get("ast", {}))
        source_id = source_data.get("id")
        if isinstance(source_id, int):
            indexed[source_id] = source_name
    if indexed:
        compilation.source_list = [indexed.get(i, "") for i in range(max(indexed) + 1)]

    for source_name, file_contracts in output.get("contracts", {}).items():
        source = compilation.sources.setdefault(source_name, CompiledSource())
        for contract_name, contract_data in file_contracts.items():
            evm = contract_data.get("evm", {})
            bytecode = evm.get("bytecode", {})
            deployed = evm.get("deployedBytecode", {})
            source.contracts[contract_name] = CompiledContract(
                name=contract_name,
                abi=contract_data.get("abi", []),
                init_bytecode=decode_bytecode(bytecode.get("object", "")),
                runtime_bytecode=decode_bytecode(deployed.get("object", "")),
                init_source_map=bytecode.get("sourceMap", ""),
                runtime_source_map=deployed.get("sourceMap", ""),
                method_identifiers=evm.get("methodIdentifiers", {}),
            )

    logger.debug(
        "Loaded compilation with %d sources and %d contracts",
        len(compilation.sources),
        sum(len(s.contracts) for s in compilation.sources.values()),
    )
    return compilation


def load_solc_output_file(path: str | Path) -> Compilation:
    """Read a solc standard JSON output file from disk."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise CompilationLoadError(f"could not read solc output {path}: {e}") from e
    return load_solc_output(text)
