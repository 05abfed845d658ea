"""Validation rules domain module."""

from .entities import ValidationRule
from .value_objects import CategoryField, ValidationType

__all__ = [
    "ValidationRule",
    "CategoryField",
    "ValidationType",
]
