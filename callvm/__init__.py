"""
callvm — a stack-based bytecode engine for contract-style calls.

Each call runs in a fresh, isolated execution context (stack, memory, program
counter); storage is the only state that outlives a call and is mediated by a
checkpointing journal so failed nested calls can be contained.

This package exposes only lightweight metadata at import time. Import the
engine explicitly:

    from callvm.runtime.engine import Engine
"""

from .version import __version__

__all__ = ["__version__"]
