"""Tests for format detection and conversion."""

import pytest

from mindmap_core import (
    CycleDetectedError,
    DanglingEdgeError,
    DuplicateIdError,
    NoRootFoundError,
    SourceFormat,
    UnrecognizedFormatError,
    convert,
    detect_format,
    export_mind_map,
    find_roots,
)
from mindmap_core.normalizer import ROOT_STYLE, FIRST_LEVEL_STYLE, convert_freeform, convert_linked_records
from mindmap_core.operations import add_child, toggle_collapse


class TestDetectFormat:
    def test_canonical(self, canonical_document):
        assert detect_format(canonical_document) == SourceFormat.CANONICAL

    def test_linked_records(self, linked_records):
        assert detect_format(linked_records) == SourceFormat.LINKED_RECORD

    def test_canonical_checked_before_linked(self, canonical_document):
        canonical_document["Previous"] = None
        assert detect_format(canonical_document) == SourceFormat.CANONICAL

    def test_only_first_record_inspected(self):
        data = {"x": {"Previous": None}, "y": {"title": "no link"}}
        assert detect_format(data) == SourceFormat.LINKED_RECORD

    def test_nodes_without_ids_are_not_canonical(self):
        data = {"nodes": [{"label": "a"}], "edges": []}
        assert detect_format(data) == SourceFormat.FREEFORM

    def test_freeform_fallback(self):
        assert detect_format({"anything": 1}) == SourceFormat.FREEFORM

    def test_empty_object_is_freeform(self):
        assert detect_format({}) == SourceFormat.FREEFORM

    @pytest.mark.parametrize("data", [[1, 2], [], "text", 3, None])
    def test_non_object_rejected(self, data):
        with pytest.raises(UnrecognizedFormatError):
            detect_format(data)

    def test_lossy_disabled(self):
        with pytest.raises(UnrecognizedFormatError):
            detect_format({"anything": 1}, lossy=False)


class TestCanonical:
    def test_repairs_input(self, canonical_document):
        result = convert(canonical_document)
        model = result.model
        assert result.source_format == SourceFormat.CANONICAL
        assert model.root_id == "root"
        assert all(n.type == "mindmap" for n in model.nodes)

        background = model.get_node("node_1")
        assert (background.position.x, background.position.y) == (0.0, 0.0)
        assert background.data.style.background_color == "#f0fdf4"
        assert background.data.style.text_color == "#333333"
        assert background.data.style.font_size == 14

        assert model.root.data.notes_collapsed is True
        assert model.get_node("node_2").data.notes_collapsed is False
        assert [e.id for e in model.edges] == ["edge_root-node_1", "edge-root-node_2"]

    def test_positions_kept_without_relayout(self, canonical_document):
        model = convert(canonical_document).model
        assert model.positions()["node_2"] == (450, 300)

    def test_relayout(self, canonical_document, layered_config):
        model = convert(canonical_document, relayout=True, layered_config=layered_config).model
        assert model.positions()["root"] == (250, 200)
        assert {model.positions()["node_1"][0], model.positions()["node_2"][0]} == {650}

    def test_duplicate_ids(self, canonical_document):
        canonical_document["nodes"].append({"id": "node_1", "data": {}})
        with pytest.raises(DuplicateIdError):
            convert(canonical_document)

    def test_dangling_edge(self, canonical_document):
        canonical_document["edges"].append({"source": "node_2", "target": "ghost"})
        with pytest.raises(DanglingEdgeError):
            convert(canonical_document)

    def test_two_roots(self, canonical_document):
        canonical_document["edges"].pop()
        with pytest.raises(NoRootFoundError):
            convert(canonical_document)

    def test_cycle(self, canonical_document):
        canonical_document["edges"].append({"source": "node_2", "target": "node_1"})
        canonical_document["edges"].append({"source": "node_1", "target": "node_2"})
        with pytest.raises(CycleDetectedError):
            convert(canonical_document)

    def test_malformed_edge(self, canonical_document):
        canonical_document["edges"].append({"id": "broken"})
        with pytest.raises(UnrecognizedFormatError):
            convert(canonical_document)

    def test_collapsed_flag_hides_descendants(self, canonical_document):
        canonical_document["nodes"][0]["data"]["collapsed"] = True
        model = convert(canonical_document).model
        assert [n.id for n in model.nodes if n.hidden] == ["node_1", "node_2"]


class TestLinkedRecords:
    def test_tree_positions(self, linked_records):
        result = convert(linked_records)
        positions = result.model.positions()
        assert result.source_format == SourceFormat.LINKED_RECORD
        assert positions["A"] == (250, 200)
        assert positions["B"] == (550, 50)
        assert positions["C"] == (550, 200)

    def test_records_become_nodes(self, linked_records):
        model = convert(linked_records).model
        assert model.root_id == "A"
        node = model.get_node("B")
        assert node.label == "Which method?"
        assert node.data.notes == "Layered ranking."
        assert node.data.notes_collapsed is True
        assert [(e.source, e.target) for e in model.edges] == [("A", "B"), ("A", "C")]

    def test_depth_tints(self, linked_records):
        linked_records["D"] = {"Previous": "B", "Question": "Deeper?", "Answer": ""}
        model = convert(linked_records).model
        assert model.root.data.style.background_color == ROOT_STYLE["background_color"]
        assert model.get_node("B").data.style.background_color == FIRST_LEVEL_STYLE["background_color"]
        assert model.get_node("D").data.style.background_color == "#ffffff"

    def test_root_without_question(self):
        model = convert_linked_records({"r": {"Previous": None}, "c": {"Previous": "r", "Question": "q"}})
        assert model.root.label == "Root"

    def test_no_root(self):
        with pytest.raises(NoRootFoundError):
            convert({"A": {"Previous": "B"}, "B": {"Previous": "A"}})

    def test_two_roots(self, linked_records):
        linked_records["D"] = {"Previous": None, "Question": "Second root"}
        with pytest.raises(NoRootFoundError) as excinfo:
            convert(linked_records)
        assert excinfo.value.candidates == ["A", "D"]

    def test_dangling_previous(self, linked_records):
        linked_records["D"] = {"Previous": "Z", "Question": "Orphan"}
        with pytest.raises(DanglingEdgeError) as excinfo:
            convert(linked_records)
        assert excinfo.value.missing == "Z"

    def test_cycle_beside_root(self, linked_records):
        linked_records["D"] = {"Previous": "E"}
        linked_records["E"] = {"Previous": "D"}
        with pytest.raises(CycleDetectedError):
            convert(linked_records)


class TestFreeform:
    def test_one_child_per_key(self):
        data = {
            "Root": {"title": "ignored"},
            "intro": {"title": "Introduction", "content": "Hello"},
            "faq": {"question": "Why?", "answer": "Because"},
            "count": 5,
        }
        result = convert(data)
        model = result.model
        assert result.source_format == SourceFormat.FREEFORM
        assert model.root_id == "Root"
        assert model.root.label == "Root Topic"
        assert [n.id for n in model.nodes] == ["Root", "Node_1", "Node_2", "Node_3"]
        assert [(n.label, n.data.notes) for n in model.nodes[1:]] == [
            ("Introduction", "Hello"),
            ("Why?", "Because"),
            ("count", "5"),
        ]
        assert find_roots(model) == ["Root"]

    def test_value_without_text_fields_is_stringified(self):
        model = convert_freeform({"k": {"n": [1, 2]}})
        assert model.get_node("Node_0").data.notes == '{"n": [1, 2]}'

    def test_never_raises_on_odd_values(self):
        model = convert({"a": None, "b": [], "c": {"title": 3}, "d": {"title": ""}}).model
        assert [n.label for n in model.nodes] == ["Root Topic", "a", "b", "3", "d"]

    def test_empty_object(self):
        model = convert({}).model
        assert [n.id for n in model.nodes] == ["Root"]
        assert model.edges == []


class TestRoundTrip:
    def test_export_then_convert_preserves_map(self, blank_map, layered_config):
        model = add_child(blank_map, "root", label="Child", notes="n", config=layered_config).model
        model = add_child(model, "node_2", label="Grandchild", config=layered_config).model
        model = toggle_collapse(model, "node_2", config=layered_config).model

        restored = convert(export_mind_map(model)).model
        assert restored.root_id == model.root_id
        assert restored.to_json_dict() == model.to_json_dict()

    def test_linked_import_round_trip(self, linked_records):
        model = convert(linked_records).model
        restored = convert(export_mind_map(model)).model
        assert restored.to_json_dict() == model.to_json_dict()
