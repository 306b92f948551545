"""
Graph module for simtree.

This module builds and scores similar-artist trees.
"""

from .artist_tree import ArtistTree, TreeBuilder, build_tree

__all__ = ["ArtistTree", "TreeBuilder", "build_tree"]
