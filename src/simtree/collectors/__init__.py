"""
Collectors module for simtree.

This module resolves artists through the similarity store, falling back to
the Last.fm API on a cache miss.
"""

from .resolver import Resolver

__all__ = ["Resolver"]
