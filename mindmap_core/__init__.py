"""
Mind Map Core - Models, graph traversal, validation, layout, format
normalization and mutation operations.

This package is pure: no I/O, no global mutable state. The backend and the
CLI both build on it, so all mind map logic lives in one place.
"""

from .errors import (
    MindMapError,
    ConversionError,
    DuplicateIdError,
    CycleDetectedError,
    NoRootFoundError,
    DanglingEdgeError,
    UnrecognizedFormatError,
)

from .models import (
    ROOT_ID,
    NODE_TYPE,
    Position,
    NodeStyle,
    NodeData,
    Node,
    Edge,
    MindMap,
    edge_id,
)

from .graph import GraphIndex, add_node, add_edge, children_of, descendants_of, parent_of, find_roots
from .validation import validate_mind_map, ensure_valid, validation_summary, ValidationIssue, IssueSeverity
from .layout import (
    HORIZONTAL,
    VERTICAL,
    LayeredLayoutConfig,
    TreeLayoutConfig,
    estimate_node_size,
    layered_layout,
    tree_layout,
)
from .normalizer import SourceFormat, ConversionResult, convert, detect_format, export_mind_map
from .operations import MUTATION_OPS, MutationResult, ALL_SELECTED
from .settings import Settings, settings

__all__ = [
    # Errors
    "MindMapError",
    "ConversionError",
    "DuplicateIdError",
    "CycleDetectedError",
    "NoRootFoundError",
    "DanglingEdgeError",
    "UnrecognizedFormatError",
    # Models
    "ROOT_ID",
    "NODE_TYPE",
    "Position",
    "NodeStyle",
    "NodeData",
    "Node",
    "Edge",
    "MindMap",
    "edge_id",
    # Graph
    "GraphIndex",
    "add_node",
    "add_edge",
    "children_of",
    "descendants_of",
    "parent_of",
    "find_roots",
    # Validation
    "validate_mind_map",
    "ensure_valid",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
    # Layout
    "HORIZONTAL",
    "VERTICAL",
    "LayeredLayoutConfig",
    "TreeLayoutConfig",
    "estimate_node_size",
    "layered_layout",
    "tree_layout",
    # Normalizer
    "SourceFormat",
    "ConversionResult",
    "convert",
    "detect_format",
    "export_mind_map",
    # Operations
    "MUTATION_OPS",
    "MutationResult",
    "ALL_SELECTED",
    # Settings
    "Settings",
    "settings",
]
