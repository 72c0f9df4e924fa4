"""
Tests for gdocs_source.graph
"""

import pytest

from gdocs_source.graph import Collection, ContentGraph


class TestInMemoryContentGraph:
    def test_satisfies_protocols(self, graph):
        assert isinstance(graph, ContentGraph)
        assert isinstance(graph.add_collection("Post"), Collection)

    def test_add_collection_returns_existing(self, graph):
        first = graph.add_collection("Post", route="/p/:id")
        assert graph.add_collection("Post") is first
        assert first.route == "/p/:id"

    def test_get_unknown_collection_raises(self, graph):
        with pytest.raises(KeyError):
            graph.get_collection("Nope")

    def test_add_node_replaces_by_id(self, graph):
        posts = graph.add_collection("Post")
        posts.add_node({"id": "d1", "title": "v1"})
        posts.add_node({"id": "d1", "title": "v2"})
        assert posts.all_nodes() == [{"id": "d1", "title": "v2"}]

    def test_add_node_copies_fields(self, graph):
        fields = {"id": "d1"}
        node = graph.add_collection("Post").add_node(fields)
        node["extra"] = 1
        assert fields == {"id": "d1"}

    def test_missing_id_uses_make_uid(self, graph):
        node = graph.add_collection("Post").add_node({"title": "x"})
        assert len(node["id"]) == 32
        assert node["id"] == graph.add_collection("Other").add_node({"title": "x"})["id"]

    def test_make_uid_is_md5(self, graph):
        assert graph.make_uid("abc") == "900150983cd24fb0d6963f7d28e17f72"

    def test_add_reference(self, graph):
        posts = graph.add_collection("Post")
        posts.add_reference("author", "Author")
        assert posts.references == {"author": "Author"}

