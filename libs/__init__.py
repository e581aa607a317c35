"""
pipestack shared library package.

This package contains:
- shared Pydantic models for pipeline artifacts (statements, schemas)
- global configuration
- the error hierarchy and bounded retry helper
- observability utilities (logging, tracing, metrics)
"""

from libs.models.artifacts import Schema, Statement

__all__ = [
    "Schema",
    "Statement",
]
