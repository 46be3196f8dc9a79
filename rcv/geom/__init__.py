"""Geometry helpers.

This package is intentionally small and dependency-free (no Qt): the layout
engine and the edge geometry are pure functions that the UI layer consumes.
"""

from __future__ import annotations
