"""
gdocs-source - Content Graph Interface

The host site generator's content layer, as seen by the adapter:

    ContentGraph.add_collection(type_name, route) -> Collection
    ContentGraph.get_collection(type_name)        -> Collection
    ContentGraph.make_uid(seed)                   -> str
    Collection.add_node(fields)                   -> node
    Collection.add_reference(field, type_name)

InMemoryContentGraph implements the protocol with plain dicts. The CLI
runs against it, and tests use it in place of a real host.

Version: 0.1.0
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

__all__ = [
    'Collection',
    'ContentGraph',
    'InMemoryCollection',
    'InMemoryContentGraph',
]


@runtime_checkable
class Collection(Protocol):
    """A named set of nodes in the host content graph."""

    type_name: str

    def add_node(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    def add_reference(self, field_name: str, type_name: str) -> None:
        ...


@runtime_checkable
class ContentGraph(Protocol):
    """Capabilities the adapter needs from its host."""

    def add_collection(self, type_name: str, route: Optional[str] = None) -> Collection:
        ...

    def get_collection(self, type_name: str) -> Collection:
        ...

    def make_uid(self, seed: str) -> str:
        ...


@dataclass
class InMemoryCollection:
    """
    Collection backed by an id-keyed dict.

    Adding a node whose id already exists replaces the earlier node.

    Attributes:
        type_name: Collection name
        route: Optional route template
        nodes: Nodes keyed by id, in insertion order
        references: Declared reference fields (field → type name)
    """
    type_name: str
    route: Optional[str] = None
    nodes: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    references: Dict[str, str] = field(default_factory=dict)
    graph: Optional["InMemoryContentGraph"] = field(default=None, repr=False)

    def add_node(self, fields: Mapping[str, Any]) -> Dict[str, Any]:
        node = dict(fields)
        if not node.get('id'):
            seed = json.dumps(node, sort_keys=True, default=str)
            node['id'] = self.graph.make_uid(seed) if self.graph else _md5(seed)
        node_id = str(node['id'])
        self.nodes[node_id] = node
        return node

    def add_reference(self, field_name: str, type_name: str) -> None:
        self.references[field_name] = type_name

    def get_node(self, node_id: str) -> Optional[Dict[str, Any]]:
        return self.nodes.get(str(node_id))

    def all_nodes(self) -> List[Dict[str, Any]]:
        return list(self.nodes.values())


class InMemoryContentGraph:
    """Dict-backed ContentGraph."""

    def __init__(self):
        self.collections: Dict[str, InMemoryCollection] = {}

    def add_collection(self, type_name: str, route: Optional[str] = None) -> InMemoryCollection:
        """Create a collection, or return the existing one of that name."""
        collection = self.collections.get(type_name)
        if collection is None:
            collection = InMemoryCollection(type_name=type_name, route=route, graph=self)
            self.collections[type_name] = collection
        return collection

    def get_collection(self, type_name: str) -> InMemoryCollection:
        """
        Raises:
            KeyError: If no collection of that name exists
        """
        return self.collections[type_name]

    def make_uid(self, seed: str) -> str:
        return _md5(seed)


def _md5(seed: str) -> str:
    return hashlib.md5(seed.encode('utf-8')).hexdigest()
