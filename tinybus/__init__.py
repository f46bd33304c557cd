"""
tinybus package.

This package contains:
- Events (process-local publish/subscribe bus)
- Configuration loaded from the environment
- Structured logging setup
"""

__version__ = "0.1.0"
