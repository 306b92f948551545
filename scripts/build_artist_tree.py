#!/usr/bin/env python
"""
Build a similar-artist tree from a root artist.

1. The root name is resolved to its canonical spelling
2. Similar artists are expanded breadth-first, cached locally in SQLite
3. The tree is built with NetworkX and ranked by similarity to the root

Usage:
    # Basic usage
    ARTIST="loona" python scripts/build_artist_tree.py

    # With custom depth and threshold
    ARTIST="metallica" DEPTH=1 THRESHOLD=0.6 python scripts/build_artist_tree.py

    # Export the tree and ranking
    ARTIST="loona" EXPORT_DIR=data/trees python scripts/build_artist_tree.py
"""

from __future__ import annotations
import os
import sys
from pathlib import Path
from loguru import logger

from simtree.cache.similarity_store import SimilarityStore
from simtree.collectors.resolver import Resolver
from simtree.config import load_settings, setup_logging
from simtree.errors import LastfmError, StoreError
from simtree.graph.artist_tree import TreeBuilder
from simtree.io.lastfm_client import make_client_from_settings
from simtree.utils import human_number


def main():
    """Main entry point for building artist trees."""
    settings = load_settings(os.getenv("SIMTREE_CONFIG", "configs/config.yaml"))
    setup_logging(settings.log_level)

    artist = os.getenv("ARTIST")
    if not artist:
        logger.error("ARTIST environment variable is required")
        print("\nUsage:")
        print('  ARTIST="loona" python scripts/build_artist_tree.py')
        print("\nOptional parameters:")
        print("  DEPTH=2              # Expansion depth (default: 2)")
        print("  THRESHOLD=0.7        # Minimum similarity, 0.0-1.0 (default: 0.7)")
        print("  EXPORT_DIR=path      # Write tree JSON and ranking CSV here")
        print("  SIMTREE_DB=path      # Custom store path (default: data/cache/similar.db)")
        sys.exit(1)

    export_dir = os.getenv("EXPORT_DIR")

    logger.info("=" * 60)
    logger.info(f"Root artist: {artist}")
    logger.info(f"Depth: {settings.depth}")
    logger.info(f"Threshold: {settings.threshold}")
    logger.info(f"Store: {settings.db_path}")
    logger.info("=" * 60)

    client = make_client_from_settings(settings)
    with SimilarityStore(settings.db_path) as store:
        resolver = Resolver(store, client, api_key=settings.api_key)
        builder = TreeBuilder(resolver, depth=settings.depth, threshold=settings.threshold)

        try:
            tree = builder.build(artist)
            info = resolver.get_info(tree.root)
        except (LastfmError, StoreError) as e:
            logger.error(f"Could not build tree for {artist!r}: {e}")
            sys.exit(1)

        logger.info(f"Network calls: {resolver.network_calls}")
        stats = store.get_cache_stats()
        logger.info(f"Store: {stats['artists']} artists, {stats['pairs']} pairs")

    listeners = human_number(info.listeners) if info.listeners is not None else "?"
    print(f"\n{tree.root}  ({listeners} listeners)")
    if info.tags:
        print("  " + ", ".join(info.tags[:5]))
    print("-" * 60)
    for name, sim in tree.ranked():
        print(f"{sim:>4}  {name}  (via {tree.parent_of(name)})")

    if export_dir:
        out = Path(export_dir)
        out.mkdir(parents=True, exist_ok=True)
        slug = "".join(c if c.isalnum() else "_" for c in tree.root.lower())
        tree.export_to_json(out / f"{slug}.json")
        tree.to_frame().to_csv(out / f"{slug}.csv", index=False)
        logger.success(f"Exported to {out}")


if __name__ == "__main__":
    main()
