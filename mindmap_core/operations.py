"""
Structural and content edits on a mind map.

Every operation takes the current MindMap plus parameters and returns a
MutationResult holding the new model. Structural edits (add, delete,
collapse) re-run the layered layout; content edits (label, notes, style)
do not.

An operation whose precondition fails (missing node, collapsed parent,
deleting the root) is a silent no-op: it returns the input model with
``changed=False``. These come from UI races, not programmer errors.

``MUTATION_OPS`` is the interface table a renderer binds its events to.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from .graph import GraphIndex, add_edge, add_node, apply_collapse_visibility, remove_nodes
from .layout import LayeredLayoutConfig, layered_layout
from .models import DEFAULT_LABEL, Edge, MindMap, Node, NodeData, NodeStyle, Position, edge_id
from .settings import settings

logger = logging.getLogger(__name__)

# Pseudo node id targeting every selected node
ALL_SELECTED = "all"

FONT_SIZE_STEP = 2

BACKGROUND_PALETTE = ["#ffeb3b", "#4caf50", "#2196f3", "#f44336", "#9c27b0"]

# Style of nodes created from a question/answer exchange
ANSWER_STYLE = {"backgroundColor": "#fef9c3", "textColor": "#854d0e", "fontSize": 14}


@dataclass
class MutationResult:
    """Outcome of one mutation."""
    model: MindMap
    changed: bool = True
    focus_id: Optional[str] = None  # Node the viewport should center on
    fit_view: bool = False          # Fit the whole map instead of one node
    relayout: bool = False          # Positions were recomputed

    @property
    def positions(self) -> dict[str, tuple[float, float]]:
        return self.model.positions()


def _unchanged(model: MindMap, reason: str, *args) -> MutationResult:
    logger.debug("No-op: " + reason, *args)
    return MutationResult(model=model, changed=False)


def next_node_id(model: MindMap) -> str:
    """First free id of the form node_<n>, starting after the node count."""
    taken = {n.id for n in model.nodes}
    counter = len(model.nodes) + 1
    while f"node_{counter}" in taken:
        counter += 1
    return f"node_{counter}"


def add_child(
    model: MindMap,
    parent_id: str,
    label: str = DEFAULT_LABEL,
    notes: str = "",
    notes_collapsed: bool = True,
    style: Optional[dict] = None,
    config: LayeredLayoutConfig | None = None,
    direction: str | None = None,
) -> MutationResult:
    """Attach a new node under parent_id and re-lay out the map."""
    parent = model.get_node(parent_id)
    if parent is None:
        return _unchanged(model, "add_child on missing parent %s", parent_id)
    if parent.data.collapsed:
        return _unchanged(model, "add_child on collapsed parent %s", parent_id)

    child = Node(
        id=next_node_id(model),
        data=NodeData(
            label=label,
            notes=notes,
            notes_collapsed=notes_collapsed,
            style=NodeStyle.model_validate(style or {}),
        ),
        position=Position(x=parent.position.x + settings.node_width, y=parent.position.y),
        hidden=parent.hidden,
    )
    updated = add_node(model, child)
    updated = add_edge(updated, Edge(id=edge_id(parent_id, child.id), source=parent_id, target=child.id))
    updated = layered_layout(updated, config, direction)

    logger.info("Added node %s under %s", child.id, parent_id)
    return MutationResult(model=updated, focus_id=child.id, relayout=True)


def add_answer_child(
    model: MindMap,
    parent_id: str,
    question: str,
    answer: str,
    config: LayeredLayoutConfig | None = None,
    direction: str | None = None,
) -> MutationResult:
    """Wrap a question/answer exchange into a new child of parent_id, notes shown."""
    return add_child(
        model,
        parent_id,
        label=question,
        notes=answer,
        notes_collapsed=False,
        style=ANSWER_STYLE,
        config=config,
        direction=direction,
    )


def delete_subtree(
    model: MindMap,
    node_id: str,
    config: LayeredLayoutConfig | None = None,
    direction: str | None = None,
) -> MutationResult:
    """Remove node_id, all its descendants and every edge touching them."""
    if node_id == model.root_id:
        return _unchanged(model, "refusing to delete root %s", node_id)
    if not model.has_node(node_id):
        return _unchanged(model, "delete_subtree on missing node %s", node_id)

    doomed = {node_id, *GraphIndex(model).descendants_of(node_id)}
    updated = layered_layout(remove_nodes(model, doomed), config, direction)

    logger.info("Deleted %d nodes under %s", len(doomed), node_id)
    return MutationResult(model=updated, fit_view=True, relayout=True)


def toggle_collapse(
    model: MindMap,
    node_id: str,
    config: LayeredLayoutConfig | None = None,
    direction: str | None = None,
) -> MutationResult:
    """
    Flip the collapsed flag of node_id.

    Strict descendants become hidden on collapse. On expand they become
    visible again unless another collapsed ancestor still covers them.
    Hidden nodes stay in the model (and can still be deleted) but are left
    out of layout and rendering.
    """
    node = model.get_node(node_id)
    if node is None:
        return _unchanged(model, "toggle_collapse on missing node %s", node_id)

    updated = apply_collapse_visibility(
        model.replace_node(node.with_data(collapsed=not node.data.collapsed))
    )
    updated = layered_layout(updated, config, direction)
    return MutationResult(model=updated, focus_id=node_id, relayout=True)


def _update_node(model: MindMap, node_id: str, change: Callable[[Node], Node], what: str) -> MutationResult:
    node = model.get_node(node_id)
    if node is None:
        return _unchanged(model, "%s on missing node %s", what, node_id)
    return MutationResult(model=model.replace_node(change(node)))


def set_label(model: MindMap, node_id: str, label: str) -> MutationResult:
    return _update_node(model, node_id, lambda n: n.with_data(label=label), "set_label")


def set_notes(model: MindMap, node_id: str, notes: str) -> MutationResult:
    return _update_node(model, node_id, lambda n: n.with_data(notes=notes), "set_notes")


def toggle_notes_collapsed(model: MindMap, node_id: str) -> MutationResult:
    """Show or hide the notes of a node. The notes themselves are kept."""
    return _update_node(
        model, node_id,
        lambda n: n.with_data(notes_collapsed=not n.data.notes_collapsed),
        "toggle_notes_collapsed",
    )


def set_style(model: MindMap, node_id: str, **style: Any) -> MutationResult:
    """
    Override some style fields of a node.

    Accepts snake_case or camelCase names; fields passed as None are left
    as they are.
    """
    field_names = {name: name for name in NodeStyle.model_fields}
    field_names.update({f.alias: name for name, f in NodeStyle.model_fields.items() if f.alias})
    updates = {field_names[k]: v for k, v in style.items() if v is not None and k in field_names}

    def restyle(node: Node) -> Node:
        merged = node.data.style.model_dump()
        merged.update(updates)
        return node.with_data(style=NodeStyle.model_validate(merged))

    return _update_node(model, node_id, restyle, "set_style")


def change_font_size(model: MindMap, node_id: str, delta: int) -> MutationResult:
    """
    Grow or shrink the font of one node, or of all selected nodes when
    node_id is "all". Sizes never drop below the minimum font size.
    """
    targets = {
        n.id for n in model.nodes
        if n.id == node_id or (node_id == ALL_SELECTED and n.selected)
    }
    if not targets:
        return _unchanged(model, "change_font_size matched no node for %s", node_id)

    nodes = []
    for n in model.nodes:
        if n.id in targets:
            size = max(settings.min_font_size, n.data.style.font_size + delta)
            n = n.with_style(font_size=size)
        nodes.append(n)
    return MutationResult(model=model.model_copy(update={"nodes": nodes}))


def increase_font_size(model: MindMap, node_id: str) -> MutationResult:
    return change_font_size(model, node_id, FONT_SIZE_STEP)


def decrease_font_size(model: MindMap, node_id: str) -> MutationResult:
    return change_font_size(model, node_id, -FONT_SIZE_STEP)


def cycle_background_color(model: MindMap, node_id: str) -> MutationResult:
    """Move a node's background to the next palette color."""
    def recolor(node: Node) -> Node:
        current = node.data.style.background_color
        position = BACKGROUND_PALETTE.index(current) if current in BACKGROUND_PALETTE else -1
        return node.with_style(background_color=BACKGROUND_PALETTE[(position + 1) % len(BACKGROUND_PALETTE)])

    return _update_node(model, node_id, recolor, "cycle_background_color")


def set_selection(model: MindMap, node_ids: Iterable[str]) -> MutationResult:
    """Mark exactly node_ids as selected."""
    wanted = set(node_ids)
    nodes = [n.model_copy(update={"selected": n.id in wanted}) for n in model.nodes]
    return MutationResult(model=model.model_copy(update={"nodes": nodes}))


def relayout(
    model: MindMap,
    config: LayeredLayoutConfig | None = None,
    direction: str | None = None,
) -> MutationResult:
    """Recompute every visible position, keeping the root in place."""
    return MutationResult(model=layered_layout(model, config, direction), fit_view=True, relayout=True)


MUTATION_OPS: dict[str, Callable[..., MutationResult]] = {
    "add_child": add_child,
    "add_answer_child": add_answer_child,
    "delete_subtree": delete_subtree,
    "toggle_collapse": toggle_collapse,
    "set_label": set_label,
    "set_notes": set_notes,
    "toggle_notes_collapsed": toggle_notes_collapsed,
    "set_style": set_style,
    "change_font_size": change_font_size,
    "increase_font_size": increase_font_size,
    "decrease_font_size": decrease_font_size,
    "cycle_background_color": cycle_background_color,
    "set_selection": set_selection,
    "relayout": relayout,
}
