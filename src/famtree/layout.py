"""
Layered tidy-tree layout for the person hierarchy.

Horizontal positions follow the Reingold-Tilford algorithm with Walker's
linear-time improvements (the same formulation as d3-hierarchy's ``tree``).
Vertical positions are fixed generation bands: ``y = depth * level_height``.

All person roots hang from a virtual super-root so that a forest is laid out
as one tree. The super-root is never emitted. Spouses are not layout nodes;
they sit at a fixed offset beside their partner.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from famtree.config import ViewConfig
from famtree.hierarchy import Hierarchy
from famtree.models import HierarchyNode


@dataclass
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def padded(self, padding: float) -> "Bounds":
        return Bounds(
            self.min_x - padding,
            self.min_y - padding,
            self.max_x + padding,
            self.max_y + padding,
        )


@dataclass
class PositionedNode:
    id: int
    x: float
    y: float
    depth: int
    node: HierarchyNode
    parent_id: int | None = None


@dataclass
class Link:
    source_id: int
    target_id: int
    x1: float
    y1: float
    x2: float
    y2: float

    def control_points(self) -> list[tuple[float, float]]:
        """Cubic curve that leaves the parent vertically and enters the child vertically."""
        mid_y = (self.y1 + self.y2) / 2
        return [(self.x1, self.y1), (self.x1, mid_y), (self.x2, mid_y), (self.x2, self.y2)]


@dataclass
class SpouseLink:
    node_id: int
    spouse_id: int
    x: float  # spouse centre
    y: float
    x1: float  # connector, from the primary node's rim to the spouse's rim
    x2: float


@dataclass
class TreeLayout:
    nodes: list[PositionedNode] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    spouse_links: list[SpouseLink] = field(default_factory=list)
    bounds: Bounds | None = None

    def positions(self) -> dict[int, tuple[float, float]]:
        """Node id -> (x, y). Cycle back-references share the id of an ancestor and are skipped."""
        return {n.id: (n.x, n.y) for n in self.nodes if not n.node.is_cycle_ref}

    def node_at(self, x: float, y: float, radius: float) -> PositionedNode | None:
        """Topmost node whose circle contains (x, y)."""
        for n in reversed(self.nodes):
            if (n.x - x) ** 2 + (n.y - y) ** 2 <= radius**2:
                return n
        return None


# ============================================================================
# Tidy tree
# ============================================================================


class _TidyNode:
    """Working record for one node: prelim (z), modifier (m), change (c), shift (s), thread (t)."""

    __slots__ = ("node", "parent", "children", "A", "a", "z", "m", "c", "s", "t", "i", "x", "depth")

    def __init__(self, node: HierarchyNode | None, i: int):
        self.node = node
        self.parent: _TidyNode | None = None
        self.children: list[_TidyNode] | None = None
        self.A: _TidyNode | None = None  # default ancestor
        self.a: _TidyNode = self  # ancestor
        self.z = 0.0
        self.m = 0.0
        self.c = 0.0
        self.s = 0.0
        self.t: _TidyNode | None = None
        self.i = i
        self.x = 0.0
        self.depth = 0


def _next_left(v: _TidyNode) -> _TidyNode | None:
    return v.children[0] if v.children else v.t


def _next_right(v: _TidyNode) -> _TidyNode | None:
    return v.children[-1] if v.children else v.t


def _move_subtree(wm: _TidyNode, wp: _TidyNode, shift: float):
    change = shift / (wp.i - wm.i)
    wp.c -= change
    wp.s += shift
    wm.c += change
    wp.z += shift
    wp.m += shift


def _execute_shifts(v: _TidyNode):
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.z += shift
        w.m += shift
        change += w.c
        shift += w.s + change


def _next_ancestor(vim: _TidyNode, v: _TidyNode, ancestor: _TidyNode) -> _TidyNode:
    return vim.a if vim.a.parent is v.parent else ancestor


def _each_after(root: _TidyNode, callback: Callable[[_TidyNode], None]):
    """Post-order, left to right."""
    nodes = [root]
    order = []
    while nodes:
        node = nodes.pop()
        order.append(node)
        if node.children:
            nodes.extend(node.children)
    while order:
        callback(order.pop())


def _each_before(root: _TidyNode, callback: Callable[[_TidyNode], None]):
    """Pre-order, left to right."""
    nodes = [root]
    while nodes:
        node = nodes.pop()
        callback(node)
        if node.children:
            nodes.extend(reversed(node.children))


class TidyTreeLayout:
    """Computes x (in separation units) and depth for every visible node."""

    def __init__(self, sibling_separation: float = 1.5, cousin_separation: float = 2.0):
        self.sibling_separation = sibling_separation
        self.cousin_separation = cousin_separation

    def separation(self, a: _TidyNode, b: _TidyNode) -> float:
        return self.sibling_separation if a.parent is b.parent else self.cousin_separation

    def _wrap(self, roots: list[HierarchyNode]) -> _TidyNode:
        top = _TidyNode(None, 0)
        stack: list[tuple[_TidyNode, list[HierarchyNode]]] = [(top, roots)]
        while stack:
            parent, kids = stack.pop()
            if not kids:
                continue
            parent.children = []
            for i, kid in enumerate(kids):
                child = _TidyNode(kid, i)
                child.parent = parent
                child.depth = parent.depth + 1
                parent.children.append(child)
                stack.append((child, kid.children))
        return top

    def _first_walk(self, v: _TidyNode):
        siblings = v.parent.children
        w = siblings[v.i - 1] if v.i else None
        if v.children:
            _execute_shifts(v)
            midpoint = (v.children[0].z + v.children[-1].z) / 2
            if w is not None:
                v.z = w.z + self.separation(v, w)
                v.m = v.z - midpoint
            else:
                v.z = midpoint
        elif w is not None:
            v.z = w.z + self.separation(v, w)
        v.parent.A = self._apportion(v, w, v.parent.A or siblings[0])

    def _apportion(self, v: _TidyNode, w: _TidyNode | None, ancestor: _TidyNode) -> _TidyNode:
        if w is None:
            return ancestor

        vip = vop = v
        vim = w
        vom = vip.parent.children[0]
        sip = vip.m
        sop = vop.m
        sim = vim.m
        som = vom.m

        while True:
            vim = _next_right(vim)
            vip = _next_left(vip)
            if vim is None or vip is None:
                break
            vom = _next_left(vom)
            vop = _next_right(vop)
            vop.a = v
            shift = vim.z + sim - vip.z - sip + self.separation(vim, vip)
            if shift > 0:
                _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
                sip += shift
                sop += shift
            sim += vim.m
            sip += vip.m
            som += vom.m
            sop += vop.m

        if vim is not None and _next_right(vop) is None:
            vop.t = vim
            vop.m += sim - sop
        if vip is not None and _next_left(vom) is None:
            vom.t = vip
            vom.m += sip - som
            ancestor = v
        return ancestor

    @staticmethod
    def _second_walk(v: _TidyNode):
        v.x = v.z + v.parent.m
        v.m += v.parent.m

    def run(self, roots: list[HierarchyNode]) -> list[_TidyNode]:
        """Lay out the visible forest; returns the person nodes in pre-order."""
        top = self._wrap(roots)
        sentinel = _TidyNode(None, 0)
        sentinel.children = [top]
        top.parent = sentinel

        _each_after(top, self._first_walk)
        sentinel.m = -top.z
        _each_before(top, self._second_walk)

        out: list[_TidyNode] = []
        _each_before(top, out.append)
        return out[1:]


# ============================================================================
# Public entry point
# ============================================================================


def layout_tree(hierarchy: Hierarchy, config: ViewConfig | None = None) -> TreeLayout:
    """
    Assign coordinates to every visible node of the hierarchy.

    Collapsed nodes contribute no children. Coordinates are written back onto the
    HierarchyNodes and returned as a renderer-agnostic TreeLayout.
    """
    config = config or ViewConfig()
    layout = TreeLayout()
    if hierarchy.is_empty():
        return layout

    tidy = TidyTreeLayout(config.sibling_separation, config.cousin_separation)
    placed = tidy.run(hierarchy.roots)

    if config.fit_width:
        # Stretch the tree across fit_width, centred on 0
        left = min(placed, key=lambda t: t.x)
        right = max(placed, key=lambda t: t.x)
        s = 1.0 if left is right else tidy.separation(left, right) / 2
        tx = s - left.x
        kx = config.fit_width / (right.x + s + tx)

        def to_x(t: _TidyNode) -> float:
            return (t.x + tx) * kx - config.fit_width / 2

    else:

        def to_x(t: _TidyNode) -> float:
            return t.x * config.node_spacing

    by_tidy: dict[int, PositionedNode] = {}
    for t in placed:
        node = t.node
        node.depth = t.depth - 1
        node.x = to_x(t)
        node.y = node.depth * config.level_height

        parent = by_tidy.get(id(t.parent))
        positioned = PositionedNode(
            id=node.id,
            x=node.x,
            y=node.y,
            depth=node.depth,
            node=node,
            parent_id=parent.id if parent else None,
        )
        by_tidy[id(t)] = positioned
        layout.nodes.append(positioned)

        if parent is not None:
            layout.links.append(
                Link(
                    source_id=parent.id,
                    target_id=node.id,
                    x1=parent.x,
                    y1=parent.y,
                    x2=node.x,
                    y2=node.y,
                )
            )

        if node.spouse is not None:
            layout.spouse_links.append(
                SpouseLink(
                    node_id=node.id,
                    spouse_id=node.spouse.id,
                    x=node.x + config.spouse_offset,
                    y=node.y,
                    x1=node.x + config.node_radius,
                    x2=node.x + config.spouse_offset - config.node_radius,
                )
            )

    xs = [n.x for n in layout.nodes] + [s.x for s in layout.spouse_links]
    ys = [n.y for n in layout.nodes]
    layout.bounds = Bounds(min(xs), min(ys), max(xs), max(ys))
    return layout


# ============================================================================
# Transitions
# ============================================================================


def ease_cubic(t: float) -> float:
    """Cubic in-out easing on [0, 1]."""
    t *= 2
    if t <= 1:
        return t**3 / 2
    t -= 2
    return (t**3 + 2) / 2


def transition_frames(
    previous: dict[int, tuple[float, float]],
    layout: TreeLayout,
    origin: tuple[float, float],
    steps: int = 15,
) -> list[dict[int, tuple[float, float]]]:
    """
    Intermediate node positions between an old and a new layout.

    Nodes without a previous position (newly revealed) grow out of ``origin``,
    the previous position of the node that was toggled. The last frame equals the
    new layout exactly.
    """
    target = layout.positions()
    frames = []
    for step in range(1, steps + 1):
        k = ease_cubic(step / steps)
        frame = {}
        for node_id, (x, y) in target.items():
            x0, y0 = previous.get(node_id, origin)
            frame[node_id] = (x0 + (x - x0) * k, y0 + (y - y0) * k)
        frames.append(frame)
    return frames
