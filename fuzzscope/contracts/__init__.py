from fuzzscope.contracts.contract import Contract, Contracts

__all__ = ["Contract", "Contracts"]
