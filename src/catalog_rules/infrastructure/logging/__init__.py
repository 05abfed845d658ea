"""Logging helpers for port implementations."""
