"""
Mind map validation - Check mind maps for structural issues.

``validate_mind_map`` reports every issue it finds; ``ensure_valid`` raises
the first structural error as the matching exception, for callers that
must refuse a broken model outright.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import (
    CycleDetectedError,
    DanglingEdgeError,
    DuplicateIdError,
    MindMapError,
    NoRootFoundError,
)
from .graph import GraphIndex

if TYPE_CHECKING:
    from .models import MindMap


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invariant breach, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a mind map."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None
    error: MindMapError | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        return result


def validate_mind_map(model: "MindMap", allow_dag: bool = False) -> list[ValidationIssue]:
    """
    Validate a mind map and return a list of issues.

    Checks for:
    - Duplicate node or edge ids - ERROR
    - Dangling edges (source/target doesn't exist) - ERROR
    - Not exactly one root, or root id mismatch - ERROR
    - Cycles - ERROR
    - Nodes with several parents - ERROR (WARNING when allow_dag)
    - Nodes unreachable from the root - ERROR
    - Self-referencing and duplicate edges - WARNING
    - Empty labels - WARNING

    Args:
        model: The mind map to validate
        allow_dag: Accept multi-parent nodes (ingested canonical files)

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not model.nodes:
        error = NoRootFoundError()
        issues.append(ValidationIssue(IssueSeverity.ERROR, "Mind map has no nodes", error=error))
        return issues

    node_counts = Counter(n.id for n in model.nodes)
    for node_id, count in node_counts.items():
        if count > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate node id ({count} nodes)",
                node_id=node_id,
                error=DuplicateIdError(node_id, "node"),
            ))

    edge_counts = Counter(e.id for e in model.edges)
    for edge_id, count in edge_counts.items():
        if count > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate edge id ({count} edges)",
                edge_id=edge_id,
                error=DuplicateIdError(edge_id, "edge"),
            ))

    index = GraphIndex(model)

    for edge in index.dangling:
        missing = edge.source if edge.source not in index else edge.target
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message=f"Edge references non-existent node: {missing}",
            edge_id=edge.id,
            error=DanglingEdgeError(edge.source, edge.target, missing),
        ))

    # Check for self-referencing and duplicate edges
    seen_pairs: set[tuple[str, str]] = set()
    for edge in model.edges:
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.source
            ))
        pair = (edge.source, edge.target)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate edge from {edge.source} to {edge.target}",
                edge_id=edge.id
            ))
        seen_pairs.add(pair)

    roots = index.roots()
    if len(roots) != 1:
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message=f"Expected exactly one root, found {len(roots)}",
            error=NoRootFoundError(roots),
        ))
    elif roots[0] != model.root_id:
        issues.append(ValidationIssue(
            severity=IssueSeverity.ERROR,
            message=f"Root is {roots[0]} but model declares {model.root_id}",
            node_id=roots[0],
            error=NoRootFoundError(roots),
        ))

    for node_id, parents in index.parents.items():
        if len(parents) > 1:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING if allow_dag else IssueSeverity.ERROR,
                message=f"Node has {len(parents)} parents: {', '.join(parents)}",
                node_id=node_id,
            ))

    if model.root_id in index:
        try:
            reachable = set(index.descendants_of(model.root_id))
        except CycleDetectedError as e:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=str(e),
                node_id=e.node_id,
                error=e,
            ))
        else:
            reachable.add(model.root_id)
            unreachable = [nid for nid in index.nodes if nid not in reachable]
            if unreachable:
                # Unreachable nodes all have a parent here, so they sit on a cycle
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Nodes unreachable from root: {', '.join(unreachable)}",
                    node_id=unreachable[0],
                    error=_cycle_error(index, unreachable) if len(roots) == 1 else None,
                ))

    for node in model.nodes:
        if not node.data.label.strip():
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Node has an empty label",
                node_id=node.id
            ))

    return issues


def _cycle_error(index: GraphIndex, candidates: list[str]) -> CycleDetectedError | None:
    for node_id in candidates:
        try:
            index.descendants_of(node_id)
        except CycleDetectedError as e:
            return e
    return None


def ensure_valid(model: "MindMap", allow_dag: bool = False) -> None:
    """
    Raise the first structural error found in model.

    Raises:
        DuplicateIdError, DanglingEdgeError, NoRootFoundError, CycleDetectedError
    """
    for issue in validate_mind_map(model, allow_dag=allow_dag):
        if issue.severity == IssueSeverity.ERROR and issue.error is not None:
            raise issue.error
        if issue.severity == IssueSeverity.ERROR:
            raise MindMapError(issue.message)


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": len([i for i in issues if i.severity == IssueSeverity.ERROR]) == 0
    }
