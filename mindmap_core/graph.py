"""
Graph traversal over mind maps.

``GraphIndex`` is the shared arena + adjacency index used by every part of
the core that walks the tree (collapse, delete, layout, validation), so all
of them agree on what "descendants" means.

All module-level functions take a ``MindMap`` and return new values; the
input is never modified.
"""

from collections import defaultdict, deque
from typing import Iterable

from .errors import CycleDetectedError, DanglingEdgeError, DuplicateIdError
from .models import Edge, MindMap, Node


class GraphIndex:
    """
    O(1) lookups over one mind map snapshot.

    - nodes: node_id -> Node
    - children: source id -> target ids, in edge insertion order
    - parents: target id -> source ids, in edge insertion order

    Edges whose endpoints are missing are kept out of the adjacency
    indexes and listed in ``dangling``.
    """

    def __init__(self, model: MindMap):
        self.model = model
        self.nodes: dict[str, Node] = {}
        self.children: dict[str, list[str]] = defaultdict(list)
        self.parents: dict[str, list[str]] = defaultdict(list)
        self.dangling: list[Edge] = []

        # Duplicate ids: the first node wins here; validation reports the rest
        for node in model.nodes:
            self.nodes.setdefault(node.id, node)

        for edge in model.edges:
            if edge.source not in self.nodes or edge.target not in self.nodes:
                self.dangling.append(edge)
                continue
            self.children[edge.source].append(edge.target)
            self.parents[edge.target].append(edge.source)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def children_of(self, node_id: str) -> list[str]:
        return list(self.children.get(node_id, []))

    def parent_of(self, node_id: str) -> str | None:
        parents = self.parents.get(node_id)
        return parents[0] if parents else None

    def roots(self) -> list[str]:
        """Nodes with no incoming edge, in node order."""
        return [nid for nid in self.nodes if not self.parents.get(nid)]

    def descendants_of(self, node_id: str) -> list[str]:
        """
        All nodes reachable from node_id via outgoing edges, excluding node_id.

        Returned in depth-first preorder. Nodes reached twice through
        different parents (a DAG) are listed once; a path that returns to a
        node already on it raises CycleDetectedError.
        """
        result: list[str] = []
        seen: set[str] = {node_id}
        on_path: set[str] = {node_id}
        # Stack of (node, iterator over its children)
        stack = [(node_id, iter(self.children.get(node_id, [])))]

        while stack:
            current, pending = stack[-1]
            child = next(pending, None)
            if child is None:
                stack.pop()
                on_path.discard(current)
                continue
            if child in on_path:
                raise CycleDetectedError(child)
            if child in seen:
                continue
            seen.add(child)
            on_path.add(child)
            result.append(child)
            stack.append((child, iter(self.children.get(child, []))))

        return result

    def depths(self, root_id: str) -> dict[str, int]:
        """Shortest edge count from root_id to every reachable node (root = 0)."""
        if root_id not in self.nodes:
            return {}
        depth = {root_id: 0}
        queue = deque([root_id])
        while queue:
            current = queue.popleft()
            for child in self.children.get(current, []):
                if child not in depth:
                    depth[child] = depth[current] + 1
                    queue.append(child)
        return depth


def children_of(model: MindMap, node_id: str) -> list[str]:
    """Direct successors of node_id, in edge insertion order."""
    return GraphIndex(model).children_of(node_id)


def descendants_of(model: MindMap, node_id: str) -> set[str]:
    """Transitive successors of node_id (excluding node_id itself)."""
    return set(GraphIndex(model).descendants_of(node_id))


def parent_of(model: MindMap, node_id: str) -> str | None:
    """Structural parent of node_id, derived from the edges."""
    return GraphIndex(model).parent_of(node_id)


def find_roots(model: MindMap) -> list[str]:
    """Nodes without an incoming edge."""
    return GraphIndex(model).roots()


def add_node(model: MindMap, node: Node) -> MindMap:
    """Return a copy of model with node appended."""
    if model.has_node(node.id):
        raise DuplicateIdError(node.id, "node")
    return model.model_copy(update={"nodes": [*model.nodes, node]})


def add_edge(model: MindMap, edge: Edge) -> MindMap:
    """Return a copy of model with edge appended."""
    if any(e.id == edge.id for e in model.edges):
        raise DuplicateIdError(edge.id, "edge")
    for endpoint in (edge.source, edge.target):
        if not model.has_node(endpoint):
            raise DanglingEdgeError(edge.source, edge.target, endpoint)
    return model.model_copy(update={"edges": [*model.edges, edge]})


def collapsed_descendants(model: MindMap) -> set[str]:
    """Nodes with at least one collapsed strict ancestor."""
    index = GraphIndex(model)
    hidden: set[str] = set()
    for node in model.nodes:
        if node.data.collapsed:
            hidden.update(index.descendants_of(node.id))
    return hidden


def apply_collapse_visibility(model: MindMap) -> MindMap:
    """Set ``hidden`` on exactly the nodes below a collapsed node."""
    hidden = collapsed_descendants(model)
    nodes = [
        n if n.hidden == (n.id in hidden) else n.model_copy(update={"hidden": n.id in hidden})
        for n in model.nodes
    ]
    return model.model_copy(update={"nodes": nodes})


def remove_nodes(model: MindMap, node_ids: Iterable[str]) -> MindMap:
    """Return a copy of model without node_ids and without any edge touching them."""
    removed = set(node_ids)
    nodes = [n for n in model.nodes if n.id not in removed]
    edges = [e for e in model.edges if e.source not in removed and e.target not in removed]
    return model.model_copy(update={"nodes": nodes, "edges": edges})
