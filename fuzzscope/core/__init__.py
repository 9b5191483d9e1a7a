"""Configuration, logging and error types shared across fuzzscope."""
