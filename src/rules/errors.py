"""Exceptions that abort a run before any scanning begins."""

from __future__ import annotations


class FatalLoadError(Exception):
    """Raised when the rule schema or module documents cannot be loaded."""


__all__ = ["FatalLoadError"]
