"""
Layout algorithms for mind map nodes.

Two strategies, both deterministic:
- Layered: rank-based layout used after interactive edits; keeps the root
  pinned where it is and tolerates DAG (even cyclic) input
- Tree: one-shot subtree-weighted layout used when ingesting sources that
  carry no positions

Positions are node centers. Layout functions return a new MindMap; the
input is left untouched.
"""

import logging
from dataclasses import dataclass

from .graph import GraphIndex
from .models import MindMap, Node, Position
from .settings import settings

logger = logging.getLogger(__name__)

HORIZONTAL = "LR"
VERTICAL = "TB"


@dataclass(frozen=True)
class LayeredLayoutConfig:
    node_sep: float = 150   # Minimum gap between neighbours in one rank
    rank_sep: float = 200   # Gap between consecutive ranks
    edge_sep: float = 80
    node_width: float = 200
    node_height: float = 50
    notes_height_cap: float = 200
    isolated_offset: float = 200

    @classmethod
    def from_settings(cls) -> "LayeredLayoutConfig":
        return cls(
            node_sep=settings.node_sep,
            rank_sep=settings.rank_sep,
            edge_sep=settings.edge_sep,
            node_width=settings.node_width,
            node_height=settings.node_height,
            notes_height_cap=settings.notes_height_cap,
            isolated_offset=settings.isolated_offset,
        )


@dataclass(frozen=True)
class TreeLayoutConfig:
    start_x: float = 250
    start_y: float = 200
    horizontal_spacing: float = 300
    vertical_spacing: float = 150

    @classmethod
    def from_settings(cls) -> "TreeLayoutConfig":
        return cls(
            start_x=settings.tree_start_x,
            start_y=settings.tree_start_y,
            horizontal_spacing=settings.tree_horizontal_spacing,
            vertical_spacing=settings.tree_vertical_spacing,
        )


def estimate_node_size(node: Node, config: LayeredLayoutConfig) -> tuple[float, float]:
    """
    Estimate the rendered (width, height) of a node.

    Visible notes make the node taller, proportionally to their length and
    capped at ``notes_height_cap``. Collapsed notes do not count.
    """
    height = config.node_height
    if node.data.notes and not node.data.notes_collapsed:
        height += min(config.notes_height_cap, len(node.data.notes) / 2)
    return config.node_width, height


def connection_sides(direction: str) -> tuple[str, str]:
    """(incoming side, outgoing side) for a layout direction."""
    if direction == VERTICAL:
        return "top", "bottom"
    return "left", "right"


def _walk_ranked(index: GraphIndex, root_id: str, visible: set[str]):
    """
    Depth-first walk from root over visible nodes.

    Returns (preorder, topological order, dag parents). Back edges are
    dropped so what remains is acyclic.
    """
    preorder = [root_id]
    postorder: list[str] = []
    dag_parents: dict[str, list[str]] = {root_id: []}
    on_path = {root_id}
    stack = [(root_id, iter(index.children_of(root_id)))]

    while stack:
        current, pending = stack[-1]
        child = next(pending, None)
        if child is None:
            stack.pop()
            on_path.discard(current)
            postorder.append(current)
            continue
        if child not in visible or child in on_path:
            continue
        if child in dag_parents:
            dag_parents[child].append(current)
            continue
        dag_parents[child] = [current]
        preorder.append(child)
        on_path.add(child)
        stack.append((child, iter(index.children_of(child))))

    return preorder, list(reversed(postorder)), dag_parents


def layered_layout(
    model: MindMap,
    config: LayeredLayoutConfig | None = None,
    direction: str | None = None,
) -> MindMap:
    """
    Arrange visible nodes in ranks by longest path from the root.

    Ranks advance along the main axis (x for "LR", y for "TB"); within a
    rank nodes keep first-encountered depth-first order and are packed
    along the cross axis at least ``node_sep`` apart, centered on their
    parents. Hidden nodes keep their positions. Visible nodes the root
    cannot reach are stacked at a fixed offset from the root. The root
    always ends where it started.

    Args:
        model: Mind map to lay out
        config: Spacing and size estimates (defaults from settings)
        direction: "LR" (horizontal) or "TB" (vertical)

    Returns:
        A new MindMap with updated positions and connection sides
    """
    config = config or LayeredLayoutConfig.from_settings()
    direction = direction or settings.direction
    horizontal = direction != VERTICAL
    target_side, source_side = connection_sides(direction)

    index = GraphIndex(model)
    root = index.nodes.get(model.root_id)
    if root is None:
        logger.warning("Layered layout skipped: root %s not found", model.root_id)
        return model

    root_pos = root.position
    root_main, root_cross = (root_pos.x, root_pos.y) if horizontal else (root_pos.y, root_pos.x)
    visible = {n.id for n in model.nodes if not n.hidden} | {root.id}

    sizes: dict[str, tuple[float, float]] = {}
    for node_id in visible:
        width, height = estimate_node_size(index.nodes[node_id], config)
        # Stored as (main extent, cross extent)
        sizes[node_id] = (width, height) if horizontal else (height, width)

    preorder, topo_order, dag_parents = _walk_ranked(index, root.id, visible)

    # Longest path from root
    rank: dict[str, int] = {root.id: 0}
    for node_id in topo_order:
        for child in index.children_of(node_id):
            if child in dag_parents and node_id in dag_parents[child]:
                rank[child] = max(rank.get(child, 0), rank[node_id] + 1)

    ranks: dict[int, list[str]] = {}
    for node_id in preorder:
        ranks.setdefault(rank[node_id], []).append(node_id)

    # Main axis: consecutive ranks separated by rank_sep between their extents
    main_at: dict[int, float] = {0: root_main}
    for r in range(1, len(ranks)):
        previous_extent = max(sizes[n][0] for n in ranks[r - 1])
        extent = max(sizes[n][0] for n in ranks[r])
        main_at[r] = main_at[r - 1] + previous_extent / 2 + config.rank_sep + extent / 2

    # Cross axis: pack each rank, then center it on the parents
    cross: dict[str, float] = {root.id: root_cross}
    for r in range(1, len(ranks)):
        members = ranks[r]
        desired = []
        for node_id in members:
            placed = [cross[p] for p in dag_parents[node_id] if p in cross]
            desired.append(sum(placed) / len(placed) if placed else root_cross)

        packed: list[float] = []
        for i, node_id in enumerate(members):
            value = desired[i]
            if packed:
                gap = (sizes[members[i - 1]][1] + sizes[node_id][1]) / 2 + config.node_sep
                value = max(value, packed[-1] + gap)
            packed.append(value)

        shift = sum(d - p for d, p in zip(desired, packed)) / len(members)
        for node_id, value in zip(members, packed):
            cross[node_id] = value + shift

    positions: dict[str, tuple[float, float]] = {}
    for node_id in preorder:
        main, cr = main_at[rank[node_id]], cross[node_id]
        positions[node_id] = (main, cr) if horizontal else (cr, main)

    # Visible but unreachable from the root
    isolated = [n.id for n in model.nodes if n.id in visible and n.id not in positions]
    if isolated:
        logger.debug("Placing %d isolated nodes at fallback offset", len(isolated))
    offset = 0.0
    for node_id in isolated:
        main = root_main + config.isolated_offset
        cr = root_cross + offset
        positions[node_id] = (main, cr) if horizontal else (cr, main)
        offset += sizes[node_id][1] + config.node_sep

    # Root never moves
    positions[root.id] = (root_pos.x, root_pos.y)

    nodes = []
    for node in model.nodes:
        if node.id not in positions:
            nodes.append(node)
            continue
        x, y = positions[node.id]
        nodes.append(node.model_copy(update={
            "position": Position(x=x, y=y),
            "source_side": source_side,
            "target_side": target_side,
        }))
    return model.model_copy(update={"nodes": nodes})


def subtree_sizes(index: GraphIndex, root_id: str) -> dict[str, int]:
    """
    Number of nodes in each subtree below root_id, itself included.

    Computed once per node in a single bottom-up pass (leaves = 1).
    """
    sizes: dict[str, int] = {}
    entered: set[str] = set()
    stack = [(root_id, False)]
    while stack:
        node_id, expanded = stack.pop()
        if expanded:
            sizes[node_id] = 1 + sum(sizes[c] for c in index.children_of(node_id) if c in sizes)
            continue
        if node_id in entered:
            continue
        entered.add(node_id)
        stack.append((node_id, True))
        for child in index.children_of(node_id):
            if child not in entered:
                stack.append((child, False))
    return sizes


def tree_layout(
    model: MindMap,
    root_id: str | None = None,
    config: TreeLayoutConfig | None = None,
) -> MindMap:
    """
    Arrange a tree left-to-right with subtree-weighted vertical spacing.

    Each child reserves ``subtree_size * vertical_spacing`` of vertical
    room. The first child starts at
    ``parent_y - (subtree_size(parent) - 1) * vertical_spacing / 2`` and each
    later one moves down by the previous child's span; a child's centre is
    ``(subtree_size - 1) * vertical_spacing / 2`` below the top of its span. A
    per-depth low-water mark stops a later subtree from starting above the
    end of an earlier one at the same depth.

    Args:
        model: Mind map whose edges form a tree under root_id
        root_id: Node placed at (start_x, start_y); defaults to model.root_id
        config: Start point and spacing (defaults from settings)

    Returns:
        A new MindMap with updated positions
    """
    config = config or TreeLayoutConfig.from_settings()
    root_id = root_id or model.root_id
    index = GraphIndex(model)
    if root_id not in index:
        logger.warning("Tree layout skipped: root %s not found", root_id)
        return model

    depth = index.depths(root_id)
    sizes = subtree_sizes(index, root_id)
    spacing = config.vertical_spacing

    positions: dict[str, tuple[float, float]] = {root_id: (config.start_x, config.start_y)}
    low_water: dict[int, float] = {}
    stack = [root_id]

    while stack:
        parent = stack.pop()
        px, py = positions[parent]
        children = [c for c in index.children_of(parent) if c not in positions]
        if not children:
            continue

        level = depth[parent] + 1
        cursor = py - (sizes[parent] - 1) * spacing / 2
        if level in low_water:
            cursor = max(cursor, low_water[level])

        for child in children:
            center = cursor + (sizes[child] - 1) * spacing / 2
            positions[child] = (px + config.horizontal_spacing, center)
            cursor += sizes[child] * spacing
            low_water[level] = cursor

        # Reversed so the first child is expanded first
        stack.extend(reversed(children))

    nodes = [
        node.model_copy(update={"position": Position(x=positions[node.id][0], y=positions[node.id][1])})
        if node.id in positions else node
        for node in model.nodes
    ]
    return model.model_copy(update={"nodes": nodes})
