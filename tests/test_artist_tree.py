"""
Tests for building and scoring similar-artist trees.
"""

import tempfile
import shutil
from pathlib import Path
import pytest

from simtree.cache.similarity_store import SimilarityStore
from simtree.collectors.resolver import Resolver
from simtree.errors import NetworkError, NoApiKey
from simtree.graph.artist_tree import ArtistTree, TreeBuilder, build_tree, scale_threshold

from fakes import FakeLastfmClient, GOOD_KEY

LOONA_NODES = [
    "Loona",
    "LOOΠΔ 1/3",
    "LOONA/yyxy",
    "LOOΠΔ / ODD EYE CIRCLE",
    "ARTMS",
    "Odd Eye Circle",
]


class TestTreeBuilder:
    """Tests for TreeBuilder / build_tree."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = SimilarityStore(Path(self.temp_dir) / "test_store.db")
        self.client = FakeLastfmClient()

    def teardown_method(self):
        self.store.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def build(self, root, **kwargs):
        kwargs.setdefault("api_key", GOOD_KEY)
        return build_tree(root, self.store, self.client, **kwargs)

    def test_node_order(self):
        """Root (canonical) first, then children in descending similarity, level by level."""
        tree = self.build("loona")

        assert tree.root == "Loona"
        assert tree.nodes() == LOONA_NODES
        assert tree.node_index["Loona"] == 0
        assert list(tree.graph.nodes) == LOONA_NODES

    def test_edges_and_weights(self):
        tree = self.build("loona")

        assert sorted(tree.graph.edges(data="weight")) == sorted([
            ("Loona", "LOOΠΔ 1/3", 100),
            ("Loona", "LOONA/yyxy", 95),
            ("Loona", "LOOΠΔ / ODD EYE CIRCLE", 86),
            ("LOOΠΔ 1/3", "ARTMS", 75),
            ("ARTMS", "Odd Eye Circle", 80),
        ])
        # no self-loops, one incoming edge per non-root node
        assert all(u != v for u, v in tree.graph.edges)
        assert all(tree.graph.in_degree(n) == 1 for n in tree.nodes()[1:])
        assert tree.graph.in_degree("Loona") == 0

    def test_cache_avoids_network(self):
        """Building twice issues each network call exactly once."""
        first = self.build("loona")
        calls = list(self.client.calls)

        second = self.build("loona")

        assert self.client.calls == calls
        assert calls.count("loona") == 1
        assert second.nodes() == first.nodes()

    def test_expansion_stops_at_depth(self):
        """Nodes added at the last level are never expanded."""
        self.build("loona")

        assert "Odd Eye Circle" not in self.client.calls
        assert len(self.client.calls) == 5

    def test_depth_zero(self):
        tree = self.build("loona", depth=0)

        assert tree.nodes() == LOONA_NODES[:4]
        assert self.client.calls == ["loona"]

    def test_threshold_filtering(self):
        tree = self.build("loona")
        assert "Chuu" not in tree

        low = build_tree("loona", self.store, self.client, threshold=0.5, depth=0, api_key=GOOD_KEY)
        assert "Chuu" in low

    def test_threshold_compared_as_integer(self):
        client = FakeLastfmClient({"a": ("A", [("B", 0.29), ("C", 0.28)])})
        tree = build_tree("a", self.store, client, threshold=0.29, depth=0, api_key=GOOD_KEY)

        assert scale_threshold(0.29) == 29
        assert tree.nodes() == ["A", "B"]

    def test_root_canonicalization(self):
        tree = self.build("loona 1/3", depth=0)

        assert tree.root == "LOOΠΔ 1/3"
        assert tree.nodes()[0] == "LOOΠΔ 1/3"
        assert self.store.resolve_canonical("loona 1/3") == "LOOΠΔ 1/3"
        assert self.store.resolve_canonical("LOOΠΔ 1/3") == "LOOΠΔ 1/3"

        again = self.build("LOOΠΔ 1/3", depth=0)
        assert again.nodes() == tree.nodes()
        assert self.client.calls == ["loona 1/3"]

    def test_no_duplicate_nodes(self):
        tree = self.build("loona", depth=4)

        nodes = tree.nodes()
        assert len(nodes) == len(set(nodes))
        assert tree.graph.number_of_nodes() == len(nodes)

    def test_deterministic_order(self):
        """Independent builds over the same canned responses agree on node order."""
        other_dir = tempfile.mkdtemp()
        try:
            with SimilarityStore(Path(other_dir) / "other.db") as other_store:
                other = build_tree("loona", other_store, FakeLastfmClient(), api_key=GOOD_KEY)
            assert self.build("loona").nodes() == other.nodes()
        finally:
            shutil.rmtree(other_dir, ignore_errors=True)

    def test_root_without_children(self):
        """A root with nothing above threshold is a one-node tree, not an error."""
        tree = self.build("odd eye circle")

        assert tree.root == "Odd Eye Circle"
        assert tree.nodes() == ["Odd Eye Circle"]
        assert tree.graph.number_of_edges() == 0
        assert tree.similarity_to("Odd Eye Circle") == 100

    def test_info_lookup_before_build(self):
        """Fetching artist info first does not make the root look already expanded."""
        client = FakeLastfmClient(info={"loona": ("Loona", 412000, ["k-pop"])})
        Resolver(self.store, client, api_key=GOOD_KEY).get_info("loona")

        tree = build_tree("loona", self.store, client, api_key=GOOD_KEY)

        assert tree.nodes() == LOONA_NODES
        assert client.calls.count("loona") == 1

    def test_no_key(self):
        """Fresh store, no key: NoApiKey and zero network calls."""
        with pytest.raises(NoApiKey):
            build_tree("loona", self.store, self.client)
        assert self.client.calls == []

    def test_resolver_error_aborts_build(self):
        client = FakeLastfmClient(fail_on={"artms": NetworkError("timed out")})
        resolver = Resolver(self.store, client, api_key=GOOD_KEY)

        with pytest.raises(NetworkError):
            TreeBuilder(resolver).build("loona")

    def test_invalid_parameters(self):
        resolver = Resolver(self.store, self.client, api_key=GOOD_KEY)
        with pytest.raises(ValueError):
            TreeBuilder(resolver, depth=-1)
        with pytest.raises(ValueError):
            TreeBuilder(resolver, threshold=70)


class TestSimilarityScoring:
    """Tests for ArtistTree.similarity_to."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = SimilarityStore(Path(self.temp_dir) / "test_store.db")

    def teardown_method(self):
        self.store.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def chain(self, first, second):
        client = FakeLastfmClient({
            "root": ("Root", [("A", first)]),
            "a": ("A", [("B", second)]),
            "b": ("B", []),
        })
        return build_tree("root", self.store, client, threshold=0.0, api_key=GOOD_KEY)

    def test_fold_identity(self):
        tree = self.chain(1.0, 0.5)
        assert tree.similarity_to("Root") == 100
        assert tree.similarity_to("A") == 100
        assert tree.similarity_to("B") == 50

    def test_fold_truncates(self):
        tree = self.chain(0.8, 0.5)
        assert tree.similarity_to("B") == 40

    def test_fold_on_loona_tree(self):
        tree = build_tree("loona", self.store, FakeLastfmClient(), api_key=GOOD_KEY)

        assert tree.similarity_to("LOONA/yyxy") == 95
        assert tree.similarity_to("ARTMS") == 75
        assert tree.similarity_to("Odd Eye Circle") == 60
        assert tree.path_to("Odd Eye Circle") == ["Loona", "LOOΠΔ 1/3", "ARTMS", "Odd Eye Circle"]

    def test_unknown_node(self):
        tree = self.chain(1.0, 0.5)
        with pytest.raises(KeyError):
            tree.similarity_to("Nobody")

    def test_manual_tree(self):
        tree = ArtistTree("Metallica")
        tree._add_node("Metallica")
        tree._add_node("Megadeth")
        tree._add_edge("Metallica", "Megadeth", 80)
        tree._add_node("Annihilator")
        tree._add_edge("Megadeth", "Annihilator", 66)

        assert tree.similarity_to("Annihilator") == 52


class TestTreeExports:
    """Tests for ranking and export helpers."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.store = SimilarityStore(Path(self.temp_dir) / "test_store.db")
        self.tree = build_tree("loona", self.store, FakeLastfmClient(), api_key=GOOD_KEY)

    def teardown_method(self):
        self.store.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_ranked(self):
        assert self.tree.ranked() == [
            ("LOOΠΔ 1/3", 100),
            ("LOONA/yyxy", 95),
            ("LOOΠΔ / ODD EYE CIRCLE", 86),
            ("ARTMS", 75),
            ("Odd Eye Circle", 60),
        ]

    def test_parent_of(self):
        assert self.tree.parent_of("Loona") is None
        assert self.tree.parent_of("ARTMS") == "LOOΠΔ 1/3"

    def test_to_frame(self):
        df = self.tree.to_frame()

        assert list(df.columns) == ["artist", "similarity", "hops", "parent"]
        assert df["artist"].tolist()[0] == "Loona"
        assert df["similarity"].tolist() == [100, 100, 95, 86, 75, 60]
        assert df.set_index("artist").loc["Odd Eye Circle", "hops"] == 3

    def test_graph_stats(self):
        stats = self.tree.get_graph_stats()

        assert stats["root"] == "Loona"
        assert stats["nodes"] == 6
        assert stats["edges"] == 5
        assert stats["max_hops"] == 3
        assert stats["leaves"] == 3

    def test_json_export_round_trip(self):
        path = Path(self.temp_dir) / "out" / "loona.json"
        self.tree.export_to_json(path)

        loaded = ArtistTree.load_from_json(path)

        assert loaded.root == "Loona"
        assert loaded.nodes() == self.tree.nodes()
        assert loaded.similarity_to("Odd Eye Circle") == 60
        assert loaded.depth == 2
        assert loaded.threshold == 0.7


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
