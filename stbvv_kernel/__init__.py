"""
StBVV Kernel - shared primitives for the fee engine.

- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Decimal coercion and cent rounding helpers
- Explicitly owned document-number sequence
"""

__version__ = "0.1.0"
