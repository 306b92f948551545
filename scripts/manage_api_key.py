#!/usr/bin/env python
"""
Show, set or clear the Last.fm API key kept in the similarity store.

Usage:
    python scripts/manage_api_key.py show
    python scripts/manage_api_key.py set <key>      # validated against Last.fm first
    python scripts/manage_api_key.py clear
"""

from __future__ import annotations
import argparse
import os
import sys
from loguru import logger

from simtree.cache.similarity_store import SimilarityStore
from simtree.config import load_settings, setup_logging
from simtree.errors import LastfmError
from simtree.io.lastfm_client import make_client_from_settings


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("show")
    p_set = sub.add_parser("set")
    p_set.add_argument("key")
    sub.add_parser("clear")
    args = parser.parse_args(argv)

    settings = load_settings(os.getenv("SIMTREE_CONFIG", "configs/config.yaml"))
    setup_logging(settings.log_level)

    with SimilarityStore(settings.db_path) as store:
        if args.command == "show":
            key = store.get_api_key()
            print(f"{key[:4]}…{key[-4:]}" if key else "no key stored")
        elif args.command == "set":
            try:
                store.set_api_key(args.key, make_client_from_settings(settings))
            except LastfmError as e:
                logger.error(f"Key rejected: {e}")
                sys.exit(1)
            logger.success("Key stored")
        else:
            store.clear_api_key()
            logger.success("Key cleared")


if __name__ == "__main__":
    main()
