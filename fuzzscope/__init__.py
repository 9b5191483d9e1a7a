"""fuzzscope: contract identification and coverage reports for smart-contract fuzzing."""

__version__ = "0.1.0"
