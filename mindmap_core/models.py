"""
Core data models for mind maps.

These models define the canonical schema:
- Nodes carrying a data payload (label, notes, collapse flags, style) and a position
- Edges from structural parent (``source``) to child (``target``)
- The mind map itself: root id plus node and edge lists

Field Naming Convention:
- Python attributes are snake_case; JSON uses camelCase aliases
  (``notesCollapsed``, ``backgroundColor``, ``rootId``)
- For backward compatibility, ``isNotesCollapsed``/``isCollapsed`` are accepted
  on node data and ``from``/``to`` on edges, and converted on input
"""

import math
import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .settings import settings

# Fixed id of the root of a freshly created mind map
ROOT_ID = "root"

# The single supported render kind
NODE_TYPE = "mindmap"

# Pinned position of the root of a freshly created mind map
ROOT_POSITION = (250.0, 200.0)

DEFAULT_LABEL = "New Topic"
ROOT_LABEL = "Central Topic"


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def edge_id(source: str, target: str) -> str:
    """Deterministic edge id for a parent/child pair."""
    return f"edge-{source}-{target}"


def _is_coordinate(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(_CamelModel):
    """A 2-D point. NaN and infinities are rejected."""
    model_config = ConfigDict(allow_inf_nan=False)

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def coerce(cls, value: Any) -> "Position":
        """Return a valid position, or the (0, 0) fallback for absent/invalid input."""
        if isinstance(value, Position):
            return value
        if isinstance(value, dict):
            x, y = value.get("x"), value.get("y")
            if _is_coordinate(x) and _is_coordinate(y):
                return cls(x=float(x), y=float(y))
        return cls()


class NodeStyle(_CamelModel):
    """Visual style of a node; unset fields fall back to the global defaults."""
    background_color: str = Field(default_factory=lambda: settings.default_background_color)
    text_color: str = Field(default_factory=lambda: settings.default_text_color)
    font_size: int = Field(default_factory=lambda: settings.default_font_size)

    @model_validator(mode='before')
    @classmethod
    def drop_unset_fields(cls, data: Any) -> Any:
        """Drop empty or unreadable values so defaults apply to them."""
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if value is None or value == "":
                continue
            if key in ("fontSize", "font_size"):
                try:
                    value = int(float(str(value).removesuffix("px")))
                except ValueError:
                    continue
            cleaned[key] = value
        return cleaned


class NodeData(_CamelModel):
    """Content payload of a node."""
    label: str = DEFAULT_LABEL
    notes: str = ""
    notes_collapsed: bool = True  # Display flag only; notes are always stored
    collapsed: bool = False       # Descendants hidden from layout and render
    style: NodeStyle = Field(default_factory=NodeStyle)

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'isNotesCollapsed'/'isCollapsed' fields."""
        if isinstance(data, dict):
            data = dict(data)
            if 'isNotesCollapsed' in data and 'notesCollapsed' not in data:
                data['notesCollapsed'] = data.pop('isNotesCollapsed')
            if 'isCollapsed' in data and 'collapsed' not in data:
                data['collapsed'] = data.pop('isCollapsed')
            if data.get('style') is None:
                data.pop('style', None)
        return data

    @field_validator('label', 'notes', mode='before')
    @classmethod
    def stringify_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator('notes_collapsed', 'collapsed', mode='before')
    @classmethod
    def default_flags(cls, value: Any, info) -> bool:
        if value is None:
            return info.field_name == 'notes_collapsed'
        return bool(value)


class Node(_CamelModel):
    """A node in the mind map."""
    id: str = Field(default_factory=generate_node_id)
    type: str = NODE_TYPE
    data: NodeData = Field(default_factory=NodeData)
    position: Position = Field(default_factory=Position)
    hidden: bool = False    # Set while an ancestor is collapsed
    selected: bool = False
    # Connection side hints written by the layered layout
    source_side: Optional[str] = None  # "right" or "bottom"
    target_side: Optional[str] = None  # "left" or "top"

    @field_validator('id', mode='before')
    @classmethod
    def stringify_id(cls, value: Any) -> str:
        return value if isinstance(value, str) else str(value)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, value: Any) -> str:
        return NODE_TYPE

    @field_validator('position', mode='before')
    @classmethod
    def repair_position(cls, value: Any) -> Position:
        return Position.coerce(value)

    @field_validator('data', mode='before')
    @classmethod
    def default_data(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def label(self) -> str:
        return self.data.label

    def with_data(self, **changes) -> "Node":
        """Copy of this node with some data fields replaced."""
        return self.model_copy(update={"data": self.data.model_copy(update=changes)})

    def with_style(self, **changes) -> "Node":
        """Copy of this node with some style fields replaced."""
        style = self.data.style.model_copy(update=changes)
        return self.with_data(style=style)

    def to_json_dict(self) -> dict:
        """Convert to the canonical export shape."""
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data.model_dump(by_alias=True),
            "position": {"x": self.position.x, "y": self.position.y},
            "hidden": self.hidden,
        }


class Edge(_CamelModel):
    """
    An edge from a structural parent (source) to a child (target).

    Uses `source` and `target` as canonical field names.
    Accepts `from`/`to` on input, plus nested render metadata in the
    `style`/`markerEnd` shape some exports carry.
    """
    id: str
    source: str
    target: str
    # Rendering metadata (cosmetic)
    type: str = "bezier"
    stroke: str = "#d9d9d9"
    stroke_width: float = 1.5
    marker_end: str = "arrowclosed"

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy fields and derive a missing id from the endpoints."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if 'from' in data and 'source' not in data:
            data['source'] = data.pop('from')
        if 'to' in data and 'target' not in data:
            data['target'] = data.pop('to')
        for key in ('source', 'target'):
            if key in data and not isinstance(data[key], str):
                data[key] = str(data[key])
        style = data.pop('style', None)
        if isinstance(style, dict):
            if 'stroke' in style:
                data.setdefault('stroke', style['stroke'])
            if 'strokeWidth' in style:
                data.setdefault('strokeWidth', style['strokeWidth'])
        marker = data.get('markerEnd')
        if isinstance(marker, dict):
            data['markerEnd'] = marker.get('type', 'arrowclosed')
        if not data.get('id') and 'source' in data and 'target' in data:
            data['id'] = edge_id(data['source'], data['target'])
        return data

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return self.model_dump(by_alias=True)


class MindMap(_CamelModel):
    """
    The complete mind map structure.

    Operations never mutate an instance in place; they return new ones.
    """
    root_id: str = ROOT_ID
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @classmethod
    def blank(cls, label: str = ROOT_LABEL) -> "MindMap":
        """A mind map holding only the root node at its pinned position."""
        root = Node(
            id=ROOT_ID,
            data=NodeData(label=label),
            position=Position(x=ROOT_POSITION[0], y=ROOT_POSITION[1]),
        )
        return cls(root_id=ROOT_ID, nodes=[root], edges=[])

    @property
    def root(self) -> Optional[Node]:
        return self.get_node(self.root_id)

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID (O(n) - use GraphIndex for indexed access)."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def replace_node(self, node: Node) -> "MindMap":
        """Copy of this mind map with the node of the same id swapped out."""
        nodes = [node if n.id == node.id else n for n in self.nodes]
        return self.model_copy(update={"nodes": nodes})

    def positions(self) -> dict[str, tuple[float, float]]:
        return {n.id: (n.position.x, n.position.y) for n in self.nodes}

    def to_json_dict(self) -> dict:
        """Convert to the canonical export schema."""
        return {
            "rootId": self.root_id,
            "nodes": [n.to_json_dict() for n in self.nodes],
            "edges": [e.to_json_dict() for e in self.edges],
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "MindMap":
        """Create a MindMap from a canonical JSON dict (handles legacy fields)."""
        nodes = [Node.model_validate(n) for n in data.get('nodes', [])]
        edges = [Edge.model_validate(e) for e in data.get('edges', [])]
        root_id = data.get('rootId')
        if not root_id:
            # Without rootId, the single node no edge points at is the root
            targets = {e.target for e in edges}
            roots = [n.id for n in nodes if n.id not in targets]
            root_id = roots[0] if len(roots) == 1 else ROOT_ID
        return cls(
            root_id=str(root_id),
            nodes=nodes,
            edges=edges,
        )
