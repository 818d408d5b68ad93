"""Building the rooted person hierarchy and folding/unfolding its subtrees."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
import logging

from famtree.graph import TreeGraph
from famtree.models import HierarchyNode, Marriage, ParentChildEdge, Person, SpouseRef
from famtree.roots import select_roots

logger = logging.getLogger(__name__)


@dataclass
class Hierarchy:
    """Result of a build: the root nodes plus what could not be placed."""

    name: str = "Family Tree"
    roots: list[HierarchyNode] = field(default_factory=list)
    used_fallback_root: bool = False
    unreachable_ids: list[int] = field(default_factory=list)
    cycle_ids: list[int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.roots


class TreeBuilder:
    """
    Turns the flat collections into HierarchyNodes.

    Lookups are indexed once per builder: persons by id (first row wins), each
    person's first marriage partner, each parent's children deduplicated by
    child id in edge order, and each child's known parents in edge order.

    A child is attached only under its owner: the first of its parents, in edge
    order, that becomes a hierarchy node. A parent that is only ever drawn as a
    spouse (or not at all) hands the child on to the next parent. A child that is
    already one of its own ancestors becomes a leaf with ``is_cycle_ref`` set.
    """

    def __init__(
        self,
        persons: list[Person],
        relationships: list[ParentChildEdge],
        marriages: list[Marriage],
    ):
        self.persons_by_id: dict[int, Person] = {}
        for p in persons:
            self.persons_by_id.setdefault(p.person_id, p)

        self.partner_of: dict[int, int] = {}
        for m in marriages:
            self.partner_of.setdefault(m.spouse1_id, m.spouse2_id)
            self.partner_of.setdefault(m.spouse2_id, m.spouse1_id)

        self.children_of: dict[int, list[int]] = {}
        self.parents_of: dict[int, list[int]] = {}
        for r in relationships:
            kids = self.children_of.setdefault(r.parent_id, [])
            if r.child_id not in kids:
                kids.append(r.child_id)
            if r.parent_id not in self.persons_by_id:
                continue
            parents = self.parents_of.setdefault(r.child_id, [])
            if r.parent_id not in parents:
                parents.append(r.parent_id)

        # Parents passed over for a child because they never became a node
        self.skipped: dict[int, set[int]] = {}
        self.expanded: set[int] = set()
        self.cycle_ids: list[int] = []

    def owner(self, child_id: int) -> int | None:
        """The parent a child is currently attached under, or None if none is left."""
        skipped = self.skipped.get(child_id, set())
        for parent_id in self.parents_of.get(child_id, []):
            if parent_id not in skipped:
                return parent_id
        return None

    def _new_node(self, person: Person, is_cycle_ref: bool = False) -> HierarchyNode:
        node = HierarchyNode(
            id=person.person_id,
            name=person.first_name,  # first name only keeps labels compact
            data=person,
            is_cycle_ref=is_cycle_ref,
        )
        spouse_id = self.partner_of.get(person.person_id)
        spouse = self.persons_by_id.get(spouse_id) if spouse_id != person.person_id else None
        if spouse is not None:
            node.spouse = SpouseRef(id=spouse.person_id, name=spouse.first_name, data=spouse)
        return node

    def build_node(self, person: Person) -> HierarchyNode:
        """Build the subtree rooted at person, depth-first in edge order."""
        root = self._new_node(person)
        self.expanded.add(person.person_id)

        # Explicit stack of (parent node, child id, ancestor ids of that child)
        stack: list[tuple[HierarchyNode, int, frozenset[int]]] = []

        def push_children(node: HierarchyNode, path: frozenset[int]):
            for child_id in reversed(self.children_of.get(node.id, [])):
                stack.append((node, child_id, path))

        push_children(root, frozenset({person.person_id}))

        while stack:
            parent, child_id, path = stack.pop()
            child = self.persons_by_id.get(child_id)
            if child is None:
                continue

            if child_id in path:
                if child_id not in self.cycle_ids:
                    logger.warning(
                        "Cycle in parent-child relationships: %s is an ancestor of %s; "
                        "drawing it as a leaf",
                        child_id,
                        parent.id,
                    )
                    self.cycle_ids.append(child_id)
                parent.children.append(self._new_node(child, is_cycle_ref=True))
                continue

            if self.owner(child_id) != parent.id or child_id in self.expanded:
                continue

            node = self._new_node(child)
            self.expanded.add(child_id)
            parent.children.append(node)
            push_children(node, path | {child_id})

        return root

    def build(self, roots: list[Person]) -> list[HierarchyNode]:
        """
        Build one subtree per root, repeating until every child that is still
        missing has no parent left to hang under.
        """
        while True:
            self.expanded = set()
            self.cycle_ids = []
            nodes = []
            for person in roots:
                if person.person_id not in self.expanded:
                    nodes.append(self.build_node(person))
            if not self._reassign():
                return nodes

    def _reassign(self) -> bool:
        """Pass children on from owners that did not become nodes. False when settled."""
        stranded = [
            child_id
            for child_id in self.parents_of
            if child_id not in self.expanded
            and self.owner(child_id) is not None
            and self.owner(child_id) not in self.expanded
        ]
        if not stranded:
            return False

        # An owner that may still be placed through its own parents is waited for,
        # unless every stranded child is waiting (an unplaced cycle)
        ready = [c for c in stranded if not self._may_be_placed(self.owner(c))]
        for child_id in ready or stranded:
            self.skipped.setdefault(child_id, set()).add(self.owner(child_id))
        return True

    def _may_be_placed(self, person_id: int) -> bool:
        return person_id not in self.expanded and self.owner(person_id) is not None


def build_hierarchy(graph: TreeGraph, today: date | None = None) -> Hierarchy:
    """Select roots and build one subtree per root."""
    hierarchy = Hierarchy(name=graph.tree_name)
    if graph.is_empty():
        return hierarchy

    selection = select_roots(graph.persons, graph.relationships, graph.marriages, today=today)
    builder = TreeBuilder(graph.persons, graph.relationships, graph.marriages)

    hierarchy.roots = builder.build(selection.roots)

    shown = set(builder.expanded)
    for node in walk(hierarchy):
        if node.spouse is not None:
            shown.add(node.spouse.id)

    hierarchy.used_fallback_root = selection.used_fallback
    hierarchy.cycle_ids = builder.cycle_ids
    hierarchy.unreachable_ids = [p.person_id for p in graph.persons if p.person_id not in shown]
    if hierarchy.unreachable_ids:
        logger.info(
            "%d person(s) not reachable from any root: %s",
            len(hierarchy.unreachable_ids),
            hierarchy.unreachable_ids,
        )
    return hierarchy


# ============================================================================
# Traversal
# ============================================================================


def walk(hierarchy: Hierarchy, include_hidden: bool = True) -> Iterator[HierarchyNode]:
    """Pre-order walk over all nodes, or only the visible ones."""
    stack = list(reversed(hierarchy.roots))
    while stack:
        node = stack.pop()
        yield node
        kids = node.children + node.hidden_children if include_hidden else node.children
        stack.extend(reversed(kids))


def visible_nodes(hierarchy: Hierarchy) -> list[HierarchyNode]:
    return list(walk(hierarchy, include_hidden=False))


def find_node(hierarchy: Hierarchy, node_id: int) -> HierarchyNode | None:
    """First non-cycle node with the given id, searching hidden subtrees too."""
    for node in walk(hierarchy):
        if node.id == node_id and not node.is_cycle_ref:
            return node
    return None


# ============================================================================
# Collapse / expand
# ============================================================================


def collapse(node: HierarchyNode, recursive: bool = False):
    """Hide a node's children, keeping them for a later expand."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.children:
            current.hidden_children = current.children
            current.children = []
        if recursive:
            stack.extend(current.hidden_children)


def expand(node: HierarchyNode):
    if node.hidden_children:
        node.children = node.hidden_children
        node.hidden_children = []


def toggle(node: HierarchyNode):
    if node.children:
        collapse(node)
    else:
        expand(node)


def expand_all(hierarchy: Hierarchy):
    for node in walk(hierarchy):
        expand(node)


def collapse_all(hierarchy: Hierarchy):
    """Fold every subtree; the roots themselves stay visible."""
    for root in hierarchy.roots:
        collapse(root, recursive=True)
