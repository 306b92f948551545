"""Plain data shapes passed between the store, resolver and tree builder."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ArtistRecord:
    name: str
    name_lower: str
    listeners: Optional[int] = None
    tags: Optional[List[str]] = None
    info_cached_at: Optional[str] = None  # set once artist.getinfo was stored


@dataclass(frozen=True)
class SimilarityEdge:
    parent: str
    child: str
    similarity: int  # 0-100
    date_added: Optional[str] = None


@dataclass
class Resolution:
    """
    Result of resolving one artist.

    ``name`` is the canonical spelling; ``similar`` maps child names to integer
    similarity, most similar first. ``name`` is never a key of ``similar``.
    """

    name: str
    similar: Dict[str, int] = field(default_factory=dict)
    from_cache: bool = False
