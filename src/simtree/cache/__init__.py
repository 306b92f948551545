"""
Cache module for simtree.

This module provides the persistent similarity store, so that each artist is
fetched from Last.fm at most once.
"""

from .similarity_store import SimilarityStore

__all__ = ["SimilarityStore"]
