"""
Cache-or-fetch resolution of a single artist.

The resolver consults the similarity store first and only falls back to the
Last.fm client on a miss. Network results are written back to the store
before they are returned, so a second request for the same artist (in any
spelling that has been seen) never touches the network.
"""

from __future__ import annotations
from typing import Dict, Optional
from loguru import logger

from simtree.cache.similarity_store import SimilarityStore
from simtree.errors import NoApiKey, StoreError
from simtree.io.lastfm_client import LastfmClient
from simtree.models import ArtistRecord, Resolution


def scale_similarity(score: float) -> int:
    """Quantize a 0.0-1.0 score to an integer 0-100."""
    return min(100, max(0, int(round(score * 100))))


class Resolver:
    """
    Resolve artist names to their canonical form and similar artists.

    Uses caching to minimize API calls: the store is always consulted first.
    """

    def __init__(self, store: SimilarityStore, client: LastfmClient,
                 api_key: Optional[str] = None):
        """
        Initialize the resolver.

        Args:
            store: Similarity store instance
            client: Last.fm API client
            api_key: Key to use for network calls; defaults to the stored key
        """
        self.store = store
        self.client = client
        self.api_key = api_key
        self.network_calls = 0

    def _key(self) -> str:
        key = self.api_key or self.store.get_api_key()
        if not key:
            raise NoApiKey()
        return key

    def canonical_name(self, name: str) -> Optional[str]:
        return self.store.resolve_canonical(name)

    def get_similar(self, name: str) -> Resolution:
        """
        Get artists similar to ``name``.

        Args:
            name: Any spelling of the artist

        Returns:
            Resolution with the canonical name and an ordered child -> similarity
            map (most similar first). The canonical name is never a child.
        """
        canonical = self.store.resolve_canonical(name)
        if canonical is not None:
            edges = self.store.cached_edges_for(canonical)
            if edges is not None:
                logger.debug(f"Cache hit for {name!r} -> {canonical!r} ({len(edges)} pairs)")
                similar: Dict[str, int] = {}
                for edge in edges:
                    if edge.child.lower() != canonical.lower():
                        similar.setdefault(edge.child, edge.similarity)
                return Resolution(name=canonical, similar=similar, from_cache=True)

        key = self._key()
        self.network_calls += 1
        api_canonical, children = self.client.fetch_similar(name, key)

        # the stored spelling shares name_lower with api_canonical
        similar = {}
        for child, score in children:
            if child.lower() == api_canonical.lower():
                continue
            similar.setdefault(child, scale_similarity(score))

        canonical = self.store.record_resolution(api_canonical, name, similar.items())
        logger.info(f"Resolved {name!r} -> {canonical!r} with {len(similar)} similar artists")
        return Resolution(name=canonical, similar=similar)

    def get_info(self, name: str) -> ArtistRecord:
        """
        Get listener count and tags for ``name``, fetching them once.
        """
        record = self.store.get_artist(name)
        if record is not None and record.info_cached_at is not None:
            return record

        key = self._key()
        self.network_calls += 1
        canonical, listeners, tags = self.client.fetch_info(name, key)

        self.store.record_artist(canonical, alias=name)
        stored = self.store.resolve_canonical(canonical) or canonical
        self.store.update_artist_info(stored, listeners=listeners, tags=tags)

        record = self.store.get_artist(stored)
        if record is None:
            raise StoreError(f"artist {stored!r} missing right after it was recorded")
        return record
