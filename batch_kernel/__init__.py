"""
Batch Kernel - shared infrastructure for the batch process engine.

Provides:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with context propagation
- Injectable clock abstraction
"""

__version__ = "0.1.0"
