"""
Data Models Package

This package contains the Pydantic models describing encryption parameters.
"""

from .parameters import (
    ParameterSet,
    TextEncoding,
)

__all__ = [
    "ParameterSet",
    "TextEncoding",
]
