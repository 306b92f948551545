"""
simtree: similar-artist trees backed by a persistent Last.fm similarity cache.

Typical use::

    from simtree import SimilarityStore, LastfmClient, build_tree

    with SimilarityStore("data/cache/similar.db") as store:
        tree = build_tree("loona", store, LastfmClient())
        for name in tree.nodes()[1:]:
            print(name, tree.similarity_to(name))
"""

from simtree.cache.similarity_store import SimilarityStore
from simtree.collectors.resolver import Resolver
from simtree.config import Settings, load_settings, setup_logging
from simtree.errors import (
    InvalidApiKey,
    LastfmError,
    NetworkError,
    NoApiKey,
    NotFound,
    ParseError,
    RateLimited,
    SimtreeError,
    StoreError,
)
from simtree.graph.artist_tree import ArtistTree, TreeBuilder, build_tree
from simtree.io.lastfm_client import LastfmClient, make_client_from_settings
from simtree.models import ArtistRecord, Resolution, SimilarityEdge

__version__ = "0.1"

__all__ = [
    "ArtistRecord",
    "ArtistTree",
    "InvalidApiKey",
    "LastfmClient",
    "LastfmError",
    "NetworkError",
    "NoApiKey",
    "NotFound",
    "ParseError",
    "RateLimited",
    "Resolution",
    "Resolver",
    "Settings",
    "SimilarityEdge",
    "SimilarityStore",
    "SimtreeError",
    "StoreError",
    "TreeBuilder",
    "build_tree",
    "load_settings",
    "make_client_from_settings",
    "setup_logging",
]
