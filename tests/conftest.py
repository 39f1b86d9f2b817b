"""Shared fixtures for mind map tests."""

import pytest

from mindmap_core import Edge, LayeredLayoutConfig, MindMap, Node, NodeData, Position, TreeLayoutConfig, edge_id


@pytest.fixture
def layered_config():
    return LayeredLayoutConfig()


@pytest.fixture
def tree_config():
    return TreeLayoutConfig()


@pytest.fixture
def blank_map():
    return MindMap.blank()


def build_tree(parent_of: dict[str, str | None], root_id: str = "root") -> MindMap:
    """Build a mind map from a child -> parent mapping (insertion order kept)."""
    nodes = [Node(id=node_id, data=NodeData(label=node_id)) for node_id in parent_of]
    edges = [
        Edge(id=edge_id(parent, child), source=parent, target=child)
        for child, parent in parent_of.items()
        if parent is not None
    ]
    model = MindMap(root_id=root_id, nodes=nodes, edges=edges)
    root = model.get_node(root_id)
    return model.replace_node(root.model_copy(update={"position": Position(x=250, y=200)}))


@pytest.fixture
def small_tree():
    """
    root
    ├── a
    │   ├── a1
    │   └── a2
    └── b
    """
    return build_tree({"root": None, "a": "root", "a1": "a", "a2": "a", "b": "root"})


@pytest.fixture
def linked_records():
    return {
        "A": {"Previous": None, "Question": "What is the paper about?", "Answer": "Graph layout."},
        "B": {"Previous": "A", "Question": "Which method?", "Answer": "Layered ranking."},
        "C": {"Previous": "A", "Question": "Results?", "Answer": "No overlaps."},
    }


@pytest.fixture
def canonical_document():
    return {
        "nodes": [
            {
                "id": "root",
                "type": "custom",
                "data": {"label": "Topic", "notes": "Overview", "isNotesCollapsed": True},
                "position": {"x": 250, "y": 200},
            },
            {
                "id": "node_1",
                "data": {"label": "Background", "style": {"backgroundColor": "#f0fdf4"}},
                "position": {"x": "abc", "y": 100},
            },
            {
                "id": "node_2",
                "data": {"label": "Method", "notes": "Steps", "notesCollapsed": False},
                "position": {"x": 450, "y": 300},
            },
        ],
        "edges": [
            {"id": "edge_root-node_1", "source": "root", "target": "node_1"},
            {"source": "root", "target": "node_2"},
        ],
    }


@pytest.fixture
def make_tree():
    return build_tree
