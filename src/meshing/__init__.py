"""Structured grid description for the staggered finite-difference solver."""

from .grid import GridGeometry, STAGGER_OFFSETS

__all__ = ["GridGeometry", "STAGGER_OFFSETS"]
