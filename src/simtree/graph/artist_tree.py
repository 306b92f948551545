"""
Similar-artist trees using NetworkX.

A tree is grown breadth-first from a root artist. Every node is resolved
through the ``Resolver`` (and therefore cached), children below the
similarity threshold are dropped, and an artist already present anywhere in
the tree is never added twice, so the result has no cycles.
"""

from __future__ import annotations
import networkx as nx
import pandas as pd
from typing import Dict, Any, List, Optional, Tuple
from pathlib import Path
import json
from loguru import logger

from simtree.cache.similarity_store import SimilarityStore
from simtree.collectors.resolver import Resolver
from simtree.errors import StoreError
from simtree.io.lastfm_client import LastfmClient

DEFAULT_DEPTH = 2
DEFAULT_THRESHOLD = 0.7


def scale_threshold(threshold: float) -> int:
    """0.70 -> 70. Comparisons are done on the integer to avoid float drift."""
    return int(round(threshold * 100))


class ArtistTree:
    """
    Directed graph of similar artists rooted at one canonical artist.

    Nodes are artist names kept in insertion order (the root is always first,
    at index 0). Edges point from parent to child and carry an integer
    ``weight`` between 0 and 100.
    """

    def __init__(self, root: str, depth: int = DEFAULT_DEPTH,
                 threshold: float = DEFAULT_THRESHOLD):
        self.root = root
        self.depth = depth
        self.threshold = threshold
        self.graph = nx.DiGraph(root=root, depth=depth, threshold=threshold)
        self.node_index: Dict[str, int] = {}

    def _add_node(self, name: str) -> int:
        """Add a node if absent; return its index."""
        if name in self.node_index:
            return self.node_index[name]
        idx = len(self.node_index)
        self.graph.add_node(name, index=idx)
        self.node_index[name] = idx
        return idx

    def _add_edge(self, parent: str, child: str, weight: int):
        self.graph.add_edge(parent, child, weight=weight)

    @property
    def threshold_int(self) -> int:
        return scale_threshold(self.threshold)

    def nodes(self) -> List[str]:
        """All artist names, root first, in the order they were added."""
        return list(self.node_index)

    def __contains__(self, name: str) -> bool:
        return name in self.node_index

    def __len__(self) -> int:
        return len(self.node_index)

    def path_to(self, name: str) -> List[str]:
        """Shortest path (by edge count) from the root to ``name``."""
        if name not in self.node_index:
            raise KeyError(f"{name!r} is not in the tree rooted at {self.root!r}")
        return nx.shortest_path(self.graph, self.root, name)

    def similarity_to(self, name: str) -> int:
        """
        Similarity of ``name`` to the root.

        Edge weights along the shortest path are multiplied with 100 as the
        identity: root -> A (80) -> B (50) gives 80 * 50 // 100 = 40.

        Raises:
            KeyError: If ``name`` is not a node of this tree
        """
        path = self.path_to(name)
        acc = 100
        for src, dst in zip(path, path[1:]):
            acc = (acc * self.graph[src][dst]["weight"]) // 100
        return acc

    def parent_of(self, name: str) -> Optional[str]:
        if name not in self.node_index:
            raise KeyError(f"{name!r} is not in the tree rooted at {self.root!r}")
        preds = list(self.graph.predecessors(name))
        return preds[0] if preds else None

    def ranked(self) -> List[Tuple[str, int]]:
        """
        Non-root nodes with their similarity to the root, most similar first.

        Ties keep insertion order.
        """
        scored = [(n, self.similarity_to(n)) for n in self.node_index if n != self.root]
        return sorted(scored, key=lambda x: x[1], reverse=True)

    def to_frame(self) -> pd.DataFrame:
        """
        One row per node: artist, similarity to root, hops from root, parent.
        Root first, then by similarity descending.
        """
        rows = []
        for name in self.node_index:
            rows.append({
                "artist": name,
                "similarity": self.similarity_to(name),
                "hops": len(self.path_to(name)) - 1,
                "parent": self.parent_of(name),
            })
        df = pd.DataFrame(rows, columns=["artist", "similarity", "hops", "parent"])
        return df.sort_values("similarity", ascending=False, kind="stable").reset_index(drop=True)

    def get_graph_stats(self) -> Dict[str, Any]:
        """Get statistics about the tree."""
        hops = [len(self.path_to(n)) - 1 for n in self.node_index]
        return {
            "root": self.root,
            "nodes": self.graph.number_of_nodes(),
            "edges": self.graph.number_of_edges(),
            "max_hops": max(hops) if hops else 0,
            "leaves": sum(1 for n in self.node_index if self.graph.out_degree(n) == 0),
            "depth": self.depth,
            "threshold": self.threshold,
        }

    def export_to_json(self, output_path: str | Path):
        """
        Export the tree to JSON format (node-link data).

        Args:
            output_path: Path to save the JSON file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = nx.node_link_data(self.graph, edges="edges")

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        logger.info(f"Tree exported to {output_path}")

    @classmethod
    def load_from_json(cls, input_path: str | Path) -> "ArtistTree":
        """
        Load a tree written by ``export_to_json``.

        Args:
            input_path: Path to the JSON file
        """
        input_path = Path(input_path)

        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        graph = nx.node_link_graph(data, directed=True, edges="edges")
        tree = cls(
            graph.graph["root"],
            depth=graph.graph.get("depth", DEFAULT_DEPTH),
            threshold=graph.graph.get("threshold", DEFAULT_THRESHOLD),
        )
        tree.graph = graph
        ordered = sorted(graph.nodes(data=True), key=lambda n: n[1]["index"])
        tree.node_index = {name: attrs["index"] for name, attrs in ordered}

        logger.info(f"Tree loaded from {input_path}: "
                    f"{graph.number_of_nodes()} nodes, "
                    f"{graph.number_of_edges()} edges")
        return tree

    def __repr__(self):
        return (f"ArtistTree(root={self.root!r}, nodes={len(self)}, "
                f"depth={self.depth}, threshold={self.threshold})")


class TreeBuilder:
    """
    Breadth-first builder for ``ArtistTree``.

    Level 0 resolves the root (canonicalising its name); every later level
    expands every node currently in the tree. After ``depth + 1`` levels the
    nodes added last stay leaves.
    """

    def __init__(self, resolver: Resolver, depth: int = DEFAULT_DEPTH,
                 threshold: float = DEFAULT_THRESHOLD):
        """
        Args:
            resolver: Cache-or-fetch resolver
            depth: Number of levels after the root level
            threshold: Minimum similarity (0.0-1.0) for a child to be added
        """
        if depth < 0:
            raise ValueError(f"depth must be >= 0, got {depth}")
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be within 0.0..1.0, got {threshold}")
        self.resolver = resolver
        self.depth = depth
        self.threshold = threshold

    def build(self, root_name: str) -> ArtistTree:
        """
        Build the tree for ``root_name``.

        Any resolver error propagates; no partially built tree is returned.
        """
        logger.info(f"Building tree for {root_name!r}, depth={self.depth}, threshold={self.threshold}")

        root = self.resolver.get_similar(root_name)
        canonical = self.resolver.canonical_name(root.name)
        if canonical is None:
            raise StoreError(f"{root.name!r} was resolved but is not in the store")

        tree = ArtistTree(canonical, depth=self.depth, threshold=self.threshold)
        tree._add_node(canonical)
        min_sim = tree.threshold_int
        expanded = set()

        for level in range(self.depth + 1):
            frontier = [canonical] if level == 0 else tree.nodes()
            added = 0
            for parent in frontier:
                # re-expanding a node cannot add anything new
                if parent in expanded:
                    continue
                expanded.add(parent)

                similar = root.similar if parent == canonical else self.resolver.get_similar(parent).similar
                for child, sim in similar.items():
                    if sim < min_sim:
                        continue
                    tree._add_node(parent)
                    if child in tree:
                        continue
                    tree._add_node(child)
                    tree._add_edge(parent, child, sim)
                    added += 1

            logger.debug(f"Level {level}: expanded {len(frontier)} nodes, added {added}")

        logger.success(f"Tree for {tree.root!r} built: {len(tree)} nodes, "
                       f"{tree.graph.number_of_edges()} edges")
        return tree


def build_tree(root_name: str, store: SimilarityStore, client: LastfmClient,
               depth: int = DEFAULT_DEPTH, threshold: float = DEFAULT_THRESHOLD,
               api_key: Optional[str] = None) -> ArtistTree:
    """Resolve ``root_name`` and expand it into an ``ArtistTree``."""
    resolver = Resolver(store, client, api_key=api_key)
    return TreeBuilder(resolver, depth=depth, threshold=threshold).build(root_name)
