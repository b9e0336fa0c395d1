"""
DeltaWatch Utils
================

Supporting data structures for the DeltaWatch observer.

Classes:
- BindingGraph: Directed graph of binding endpoints with cycle detection
"""

from .cycle_detector import BindingGraph

__all__ = [
    "BindingGraph",
]
