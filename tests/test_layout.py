"""Tests for the layered and tree layouts."""

from collections import defaultdict

from mindmap_core import (
    Edge,
    LayeredLayoutConfig,
    Node,
    NodeData,
    Position,
    estimate_node_size,
    layered_layout,
    tree_layout,
)
from mindmap_core.graph import GraphIndex
from mindmap_core.layout import subtree_sizes


def wide_tree(make_tree):
    return make_tree({
        "root": None,
        "a": "root", "b": "root", "c": "root",
        "a1": "a", "a2": "a", "a3": "a",
        "b1": "b",
        "c1": "c", "c2": "c",
        "a1x": "a1", "a1y": "a1", "c2x": "c2",
    })


def with_edges(model, *pairs):
    extra = [Edge(id=f"edge-{s}-{t}", source=s, target=t) for s, t in pairs]
    return model.model_copy(update={"edges": [*model.edges, *extra]})


class TestNodeSize:
    def test_plain_node(self, layered_config):
        assert estimate_node_size(Node(id="a"), layered_config) == (200, 50)

    def test_visible_notes_grow_height(self, layered_config):
        node = Node(id="a", data=NodeData(notes="x" * 100, notes_collapsed=False))
        assert estimate_node_size(node, layered_config) == (200, 100)

    def test_notes_growth_capped(self, layered_config):
        node = Node(id="a", data=NodeData(notes="x" * 5000, notes_collapsed=False))
        assert estimate_node_size(node, layered_config) == (200, 250)

    def test_collapsed_notes_ignored(self, layered_config):
        node = Node(id="a", data=NodeData(notes="x" * 100, notes_collapsed=True))
        assert estimate_node_size(node, layered_config) == (200, 50)


class TestLayeredLayout:
    def test_single_child_right_of_root(self, make_tree, layered_config):
        model = layered_layout(make_tree({"root": None, "c": "root"}), layered_config, "LR")
        positions = model.positions()
        assert positions["root"] == (250, 200)
        assert positions["c"] == (650, 200)

    def test_two_children_symmetric_around_root(self, make_tree, layered_config):
        model = layered_layout(make_tree({"root": None, "c1": "root", "c2": "root"}), layered_config, "LR")
        positions = model.positions()
        assert positions["root"] == (250, 200)
        assert positions["c1"] == (650, 100)
        assert positions["c2"] == (650, 300)

    def test_root_never_moves(self, small_tree, layered_config):
        root = small_tree.root.model_copy(update={"position": Position(x=-40, y=1000)})
        model = layered_layout(small_tree.replace_node(root), layered_config)
        assert model.root.position == Position(x=-40, y=1000)

    def test_input_not_modified(self, small_tree, layered_config):
        before = small_tree.positions()
        layered_layout(small_tree, layered_config)
        assert small_tree.positions() == before

    def test_deterministic(self, make_tree, layered_config):
        model = wide_tree(make_tree)
        assert layered_layout(model, layered_config).positions() == layered_layout(model, layered_config).positions()

    def test_ranks_do_not_overlap(self, make_tree, layered_config):
        model = layered_layout(wide_tree(make_tree), layered_config)
        columns = defaultdict(list)
        for x, y in model.positions().values():
            columns[x].append(y)
        assert sorted(columns) == [250, 650, 1050, 1450]
        for ys in columns.values():
            ys.sort()
            for upper, lower in zip(ys, ys[1:]):
                assert lower - upper >= layered_config.node_height + layered_config.node_sep

    def test_visible_notes_widen_gap(self, make_tree, layered_config):
        model = make_tree({"root": None, "c1": "root", "c2": "root"})
        c1 = model.get_node("c1").with_data(notes="x" * 100, notes_collapsed=False)
        model = layered_layout(model.replace_node(c1), layered_config)
        assert model.get_node("c2").position.y - model.get_node("c1").position.y == 225

    def test_hidden_nodes_keep_position(self, small_tree, layered_config):
        hidden = small_tree.get_node("a1").model_copy(update={"hidden": True, "position": Position(x=7, y=8)})
        model = layered_layout(small_tree.replace_node(hidden), layered_config)
        assert model.get_node("a1").position == Position(x=7, y=8)
        assert model.get_node("a2").position.x == 1050
        assert model.get_node("a1").source_side is None

    def test_isolated_nodes_stacked_at_offset(self, blank_map, layered_config):
        model = blank_map.model_copy(update={"nodes": [*blank_map.nodes, Node(id="x"), Node(id="y")]})
        positions = layered_layout(model, layered_config).positions()
        assert positions["x"] == (450, 200)
        assert positions["y"] == (450, 400)

    def test_vertical_direction(self, make_tree, layered_config):
        model = layered_layout(make_tree({"root": None, "c": "root"}), layered_config, "TB")
        child = model.get_node("c")
        assert (child.position.x, child.position.y) == (250, 450)
        assert (child.target_side, child.source_side) == ("top", "bottom")

    def test_horizontal_sides(self, make_tree, layered_config):
        model = layered_layout(make_tree({"root": None, "c": "root"}), layered_config, "LR")
        child = model.get_node("c")
        assert (child.target_side, child.source_side) == ("left", "right")

    def test_longest_path_rank(self, make_tree, layered_config):
        model = with_edges(make_tree({"root": None, "a": "root", "b": "a"}), ("root", "b"))
        positions = layered_layout(model, layered_config).positions()
        assert positions["a"][0] == 650
        assert positions["b"][0] == 1050

    def test_dag_child_centered_on_parents(self, make_tree, layered_config):
        model = with_edges(make_tree({"root": None, "a": "root", "b": "root", "c": "a"}), ("b", "c"))
        positions = layered_layout(model, layered_config).positions()
        assert positions["c"] == (1050, (positions["a"][1] + positions["b"][1]) / 2)

    def test_cycle_terminates(self, make_tree, layered_config):
        model = with_edges(make_tree({"root": None, "a": "root", "b": "a"}), ("b", "a"))
        positions = layered_layout(model, layered_config).positions()
        assert positions["a"] == (650, 200)
        assert positions["b"] == (1050, 200)

    def test_custom_spacing(self, make_tree):
        config = LayeredLayoutConfig(rank_sep=100, node_width=100)
        positions = layered_layout(make_tree({"root": None, "c": "root"}), config, "LR").positions()
        assert positions["c"] == (450, 200)


class TestTreeLayout:
    def test_subtree_sizes(self, small_tree):
        assert subtree_sizes(GraphIndex(small_tree), "root") == {"root": 5, "a": 3, "a1": 1, "a2": 1, "b": 1}

    def test_subtree_sizes_terminate_on_cycle(self, make_tree):
        model = with_edges(make_tree({"root": None, "a": "root"}), ("a", "root"))
        assert subtree_sizes(GraphIndex(model), "root") == {"root": 2, "a": 1}

    def test_positions(self, small_tree, tree_config):
        positions = tree_layout(small_tree, config=tree_config).positions()
        assert positions == {
            "root": (250, 200),
            "a": (550, 50),
            "a1": (850, -50),
            "a2": (850, 100),
            "b": (550, 350),
        }

    def test_single_child_half_slot_above_parent(self, make_tree, tree_config):
        positions = tree_layout(make_tree({"root": None, "c": "root"}), config=tree_config).positions()
        assert positions["c"] == (550, 125)

    def test_linked_scenario_siblings(self, make_tree, tree_config):
        positions = tree_layout(make_tree({"A": None, "B": "A", "C": "A"}, root_id="A"), config=tree_config).positions()
        assert positions == {"A": (250, 200), "B": (550, 50), "C": (550, 200)}

    def test_later_child_moves_down_by_previous_span(self, small_tree, tree_config):
        positions = tree_layout(small_tree, config=tree_config).positions()
        top_of_a = positions["a"][1] - (3 - 1) * tree_config.vertical_spacing / 2
        assert positions["b"][1] == top_of_a + 3 * tree_config.vertical_spacing

    def test_sibling_spans_disjoint(self, make_tree, tree_config):
        model = wide_tree(make_tree)
        positions = tree_layout(model, config=tree_config).positions()
        sizes = subtree_sizes(GraphIndex(model), "root")
        columns = defaultdict(list)
        for node_id, (x, y) in positions.items():
            start = y - (sizes[node_id] - 1) * tree_config.vertical_spacing / 2
            columns[x].append((start, start + sizes[node_id] * tree_config.vertical_spacing))
        for spans in columns.values():
            spans.sort()
            for (_, end), (start, _) in zip(spans, spans[1:]):
                assert start >= end

    def test_explicit_root(self, small_tree, tree_config):
        positions = tree_layout(small_tree, root_id="a", config=tree_config).positions()
        assert positions["a"] == (250, 200)
        assert positions["a1"] == (550, 50)
        assert positions["a2"] == (550, 200)
        assert positions["b"] == small_tree.positions()["b"]

    def test_missing_root_leaves_model(self, small_tree, tree_config):
        assert tree_layout(small_tree, root_id="ghost", config=tree_config) is small_tree
