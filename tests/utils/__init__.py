"""
Test utilities for DeltaWatch.

This package contains shared testing utilities to help write
better, more maintainable tests.
"""

from .array_fuzzer import ArrayFuzzer

__all__ = [
    "ArrayFuzzer",
]
