"""
Format normalization - turn arbitrary parsed JSON into a canonical MindMap.

Supported source shapes, checked in this order (first match wins):
- Canonical: {"nodes": [...], "edges": [...]} as produced by export
- Linked records: {record_id: {"Previous": parent_id | None, "Question": ..., "Answer": ...}}
- Freeform: any other object, read as one synthesized root with one child
  per top-level key (lossy, best effort)

Linked-record and freeform sources never carry positions, so their
result is always placed by the tree layout.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from .errors import (
    DanglingEdgeError,
    DuplicateIdError,
    NoRootFoundError,
    UnrecognizedFormatError,
)
from .graph import GraphIndex, apply_collapse_visibility
from .layout import LayeredLayoutConfig, TreeLayoutConfig, layered_layout, tree_layout
from .models import Edge, MindMap, Node, NodeData, edge_id
from .settings import settings
from .validation import ensure_valid

logger = logging.getLogger(__name__)

PREVIOUS_FIELD = "Previous"
FREEFORM_ROOT_ID = "Root"
FREEFORM_ROOT_LABEL = "Root Topic"
LINKED_ROOT_LABEL = "Root"
PLACEHOLDER_LABEL = "Untitled"

# Candidate field names, first present wins
LABEL_FIELDS = ("title", "question")
NOTES_FIELDS = ("content", "answer")

# Depth tints applied to ingested linked records
ROOT_STYLE = {"background_color": "#f0f9ff", "text_color": "#0369a1", "font_size": 16}
FIRST_LEVEL_STYLE = {"background_color": "#f0fdf4", "text_color": "#166534", "font_size": 14}


class SourceFormat(str, Enum):
    """Shapes of JSON the normalizer understands."""
    CANONICAL = "canonical"
    LINKED_RECORD = "linked_record"
    FREEFORM = "freeform"


@dataclass
class ConversionResult:
    """A converted mind map plus the shape it was read from."""
    model: MindMap
    source_format: SourceFormat

    def to_dict(self) -> dict:
        return {
            "source_format": self.source_format.value,
            "mindmap": self.model.to_json_dict(),
        }


def is_canonical_format(data: Any) -> bool:
    """Object with list-valued 'nodes' and 'edges' whose nodes carry id/data/position."""
    if not isinstance(data, dict):
        return False
    nodes, edges = data.get("nodes"), data.get("edges")
    if not isinstance(nodes, list) or not isinstance(edges, list):
        return False
    return all(isinstance(n, dict) and "id" in n and ("data" in n or "position" in n) for n in nodes)


def is_linked_record_format(data: Any) -> bool:
    """
    Check whether data is a linked-record map.

    Only one arbitrary entry (the first) is inspected, not the whole corpus.
    """
    if not isinstance(data, dict) or not data:
        return False
    first = next(iter(data.values()))
    return isinstance(first, dict) and PREVIOUS_FIELD in first


def detect_format(data: Any, lossy: Optional[bool] = None) -> SourceFormat:
    """
    Classify incoming JSON.

    Raises:
        UnrecognizedFormatError: data is not an object, or is an
            unrecognized object while lossy import is disabled
    """
    if is_canonical_format(data):
        return SourceFormat.CANONICAL
    if is_linked_record_format(data):
        return SourceFormat.LINKED_RECORD
    if not isinstance(data, dict):
        raise UnrecognizedFormatError(f"Expected a JSON object, got {type(data).__name__}")
    if lossy is None:
        lossy = settings.allow_lossy_import
    if not lossy:
        raise UnrecognizedFormatError("Unrecognized mind map format and lossy import is disabled")
    return SourceFormat.FREEFORM


def apply_depth_styles(model: MindMap) -> MindMap:
    """Tint the root and its direct children so the first levels stand out."""
    first_level = set(GraphIndex(model).children_of(model.root_id))
    nodes = []
    for node in model.nodes:
        if node.id == model.root_id:
            node = node.with_style(**ROOT_STYLE)
        elif node.id in first_level:
            node = node.with_style(**FIRST_LEVEL_STYLE)
        nodes.append(node)
    return model.model_copy(update={"nodes": nodes})


def _check_unique_ids(nodes: list[dict]) -> None:
    seen: set[str] = set()
    for raw in nodes:
        node_id = str(raw.get("id"))
        if node_id in seen:
            raise DuplicateIdError(node_id, "node")
        seen.add(node_id)


def convert_canonical(
    data: dict,
    relayout: bool = False,
    layered_config: LayeredLayoutConfig | None = None,
) -> MindMap:
    """
    Pass a canonical document through with repair.

    Invalid positions become (0, 0), style defaults are filled in, the node
    type is forced to the supported render kind and missing edge ids are
    derived from their endpoints. Positions are kept unless relayout is set.
    """
    _check_unique_ids(data["nodes"])
    try:
        candidate = MindMap.from_json_dict(data)
    except ValidationError as e:
        raise UnrecognizedFormatError(f"Malformed canonical mind map: {e.error_count()} invalid fields") from e

    roots = GraphIndex(candidate).roots()
    if len(roots) != 1:
        raise NoRootFoundError(roots)
    model = candidate.model_copy(update={"root_id": roots[0]})
    ensure_valid(model, allow_dag=True)

    if not any("hidden" in raw for raw in data["nodes"]):
        model = apply_collapse_visibility(model)
    if relayout:
        model = layered_layout(model, layered_config)
    return model


def convert_linked_records(data: dict, tint: bool = True) -> MindMap:
    """
    Convert a linked-record map into a mind map (positions not yet assigned).

    One record becomes one node (label = Question, notes = Answer); each
    non-null Previous becomes an edge from the parent record.

    Raises:
        NoRootFoundError: zero or several records have Previous = null
        DanglingEdgeError: a Previous names a missing record
    """
    roots = [str(key) for key, record in data.items()
             if isinstance(record, dict) and record.get(PREVIOUS_FIELD) is None]
    if len(roots) != 1:
        raise NoRootFoundError(roots)
    root_id = roots[0]
    record_ids = {str(key) for key in data}

    nodes: list[Node] = []
    edges: list[Edge] = []
    for key, record in data.items():
        record_id = str(key)
        record = record if isinstance(record, dict) else {}
        question = record.get("Question")
        answer = record.get("Answer")
        label = question if question else (LINKED_ROOT_LABEL if record_id == root_id else "")
        nodes.append(Node(
            id=record_id,
            data=NodeData(label=label, notes=answer or "", notes_collapsed=True),
        ))
        previous = record.get(PREVIOUS_FIELD)
        if previous is not None:
            previous = str(previous)
            if previous not in record_ids:
                raise DanglingEdgeError(previous, record_id, previous)
            edges.append(Edge(id=edge_id(previous, record_id), source=previous, target=record_id))

    model = MindMap(root_id=root_id, nodes=nodes, edges=edges)
    ensure_valid(model)
    if tint:
        model = apply_depth_styles(model)
    return model


def _first_text(value: Any, fields: tuple[str, ...]) -> Optional[str]:
    if not isinstance(value, dict):
        return None
    for name in fields:
        candidate = value.get(name)
        if candidate:
            return candidate if isinstance(candidate, str) else str(candidate)
    return None


def _stringify(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return repr(value)


def convert_freeform(data: dict) -> MindMap:
    """
    Best-effort conversion of an arbitrary object.

    A synthesized root gets one child per top-level key (except "Root").
    Label comes from title/question/the key, notes from
    content/answer/the JSON-stringified value. Never raises on dict input.
    """
    root = Node(id=FREEFORM_ROOT_ID, data=NodeData(label=FREEFORM_ROOT_LABEL))
    nodes = [root]
    edges = []

    for position, (key, value) in enumerate(data.items()):
        if key == FREEFORM_ROOT_ID:
            continue
        node_id = f"Node_{position}"
        label = _first_text(value, LABEL_FIELDS) or str(key) or PLACEHOLDER_LABEL
        notes = _first_text(value, NOTES_FIELDS)
        if notes is None:
            notes = _stringify(value)
        nodes.append(Node(id=node_id, data=NodeData(label=label, notes=notes)))
        edges.append(Edge(id=edge_id(FREEFORM_ROOT_ID, node_id), source=FREEFORM_ROOT_ID, target=node_id))

    logger.info("Freeform import synthesized %d child records", len(nodes) - 1)
    return MindMap(root_id=FREEFORM_ROOT_ID, nodes=nodes, edges=edges)


def convert(
    data: Any,
    relayout: bool = False,
    lossy: Optional[bool] = None,
    tree_config: TreeLayoutConfig | None = None,
    layered_config: LayeredLayoutConfig | None = None,
) -> ConversionResult:
    """
    Detect the shape of data and convert it into a canonical MindMap.

    Args:
        data: Parsed JSON
        relayout: Re-run the layered layout on canonical input
        lossy: Allow the freeform fallback (defaults to settings)
        tree_config: Layout used for linked-record and freeform sources
        layered_config: Layout used when relayout is requested

    Raises:
        ConversionError (or a subclass) when the input cannot be converted
    """
    source_format = detect_format(data, lossy=lossy)
    logger.debug("Detected source format: %s", source_format.value)

    if source_format == SourceFormat.CANONICAL:
        model = convert_canonical(data, relayout=relayout, layered_config=layered_config)
    elif source_format == SourceFormat.LINKED_RECORD:
        model = convert_linked_records(data)
        model = tree_layout(model, model.root_id, tree_config)
    else:
        model = convert_freeform(data)
        model = tree_layout(model, model.root_id, tree_config)

    logger.info(
        "Converted %s input: %d nodes, %d edges",
        source_format.value, len(model.nodes), len(model.edges)
    )
    return ConversionResult(model=model, source_format=source_format)


def export_mind_map(model: MindMap) -> dict:
    """Canonical export; convert() of the result reproduces the mind map."""
    return model.to_json_dict()
