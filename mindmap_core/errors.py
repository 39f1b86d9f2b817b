"""
Error taxonomy for the mind map core.

Two families:
- Structural errors (duplicate ids, cycles, dangling edges) signal an
  invariant breach inside the core and are raised loudly.
- Conversion errors are expected for bad input files; the import boundary
  catches ``ConversionError`` and rejects the import without touching the
  current model.

The structural errors double as conversion errors (a canonical file can
carry a dangling edge), so they all derive from ``ConversionError``.
"""


class MindMapError(Exception):
    """Base class for all mind map core errors."""


class ConversionError(MindMapError):
    """Raised when incoming JSON cannot be converted into a mind map."""


class DuplicateIdError(ConversionError):
    """A node or edge id collides with an existing one."""

    def __init__(self, item_id: str, kind: str = "node"):
        self.item_id = item_id
        self.kind = kind
        super().__init__(f"Duplicate {kind} id: {item_id}")


class CycleDetectedError(ConversionError):
    """Traversal met a node that is already on the current path."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Cycle detected at node: {node_id}")


class NoRootFoundError(ConversionError):
    """Zero or several candidate roots were found."""

    def __init__(self, candidates: list[str] | None = None):
        self.candidates = list(candidates or [])
        if self.candidates:
            message = f"Expected exactly one root, found {len(self.candidates)}: {', '.join(self.candidates)}"
        else:
            message = "No root found"
        super().__init__(message)


class DanglingEdgeError(ConversionError):
    """An edge references a node that does not exist."""

    def __init__(self, source: str, target: str, missing: str):
        self.source = source
        self.target = target
        self.missing = missing
        super().__init__(f"Edge {source} -> {target} references missing node: {missing}")


class UnrecognizedFormatError(ConversionError):
    """Input matches none of the supported source shapes."""
