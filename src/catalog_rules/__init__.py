"""Catalog rules engine.

Tenant-configurable validation rules and lifecycle workflows for catalog
categories.
"""

__version__ = "0.1.0"
