"""Known compiled contracts and their fuzzable call surface."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from fuzzscope.compilation.types import CompiledContract, Compilation

logger = logging.getLogger(__name__)


class Contract:
    """A compiled smart contract known to the fuzzer.

    Every ABI method starts out callable. The fuzz loop narrows the call
    surface with :meth:`disable` and widens it again with :meth:`enable`.
    Contracts compare by identity: two entries with identical bytecode are
    told apart only by their position in :class:`Contracts`.
    """

    def __init__(
        self,
        name: str,
        source_path: str,
        compiled_contract: CompiledContract,
        compilation: Compilation | None,
    ) -> None:
        self._name = name
        self._source_path = source_path
        self._compiled_contract = compiled_contract
        self._compilation = compilation
        self._lock = threading.Lock()
        # Whitelist all functions by default
        self._callable_methods: dict[str, bool] = {
            sig: True for sig in compiled_contract.method_signatures()
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def source_path(self) -> str:
        """Key of the contract's source file within its compilation."""
        return self._source_path

    @property
    def compiled_contract(self) -> CompiledContract:
        return self._compiled_contract

    @property
    def compilation(self) -> Compilation | None:
        return self._compilation

    def callable_methods(self) -> dict[str, bool]:
        """Snapshot of signature -> enabled flag."""
        with self._lock:
            return dict(self._callable_methods)

    def enabled_methods(self) -> list[str]:
        with self._lock:
            return [sig for sig, enabled in self._callable_methods.items() if enabled]

    def enable(self, signature: str) -> None:
        """Mark *signature* callable. Unknown signatures are added."""
        with self._lock:
            self._callable_methods[signature] = True

    def disable(self, signature: str) -> None:
        """Mark *signature* not callable. Unknown signatures are added."""
        with self._lock:
            self._callable_methods[signature] = False

    whitelist_function = enable
    blacklist_function = disable

    def __repr__(self) -> str:
        return f"Contract(name={self._name!r}, source_path={self._source_path!r})"


class Contracts(list):
    """Ordered registry of known contracts.

    Registration order is the tie-break for :meth:`match_bytecode`.
    """

    @classmethod
    def from_compilations(cls, compilations: Iterable[Compilation]) -> "Contracts":
        contracts = cls()
        for compilation in compilations:
            for source_path, compiled in compilation.contracts():
                contracts.append(Contract(compiled.name, source_path, compiled, compilation))
                logger.debug("Registered contract from %s", source_path, extra={"contract": compiled.name})
        logger.debug("Registered %d contracts", len(contracts))
        return contracts

    def match_bytecode(self, init_bytecode: bytes, runtime_bytecode: bytes) -> Contract | None:
        """Return the first registered contract matching the given bytecode."""
        for contract in self:
            if contract.compiled_contract.is_match(init_bytecode, runtime_bytecode):
                return contract
        return None

    def by_name(self, name: str) -> Contract | None:
        for contract in self:
            if contract.name == name:
                return contract
        return None
