"""Loading the raw tree graph and its NetworkX projection."""

from dataclasses import dataclass, field
import sqlite3

import networkx as nx

from famtree import database
from famtree.errors import DataLoadError
from famtree.models import FamilyTree, Marriage, ParentChildEdge, Person


@dataclass
class TreeGraph:
    """The three flat collections of one tree, in collection order."""

    persons: list[Person] = field(default_factory=list)
    relationships: list[ParentChildEdge] = field(default_factory=list)
    marriages: list[Marriage] = field(default_factory=list)
    tree: FamilyTree | None = None

    @property
    def tree_name(self) -> str:
        return self.tree.tree_name if self.tree else "Family Tree"

    def is_empty(self) -> bool:
        return not self.persons


def load_tree_graph(conn: sqlite3.Connection, tree_id: int) -> TreeGraph:
    """
    Fetch the tree record and its persons, relationships and marriages.

    Raises TreeNotFoundError if the tree does not exist, and DataLoadError if any
    of the queries fail. Nothing is returned unless all three collections loaded.
    """
    tree = database.get_tree(conn, tree_id)
    try:
        persons = database.get_persons(conn, tree_id)
        relationships = database.get_relationships(conn, tree_id)
        marriages = database.get_marriages(conn, tree_id)
    except (sqlite3.Error, ValueError) as e:
        raise DataLoadError(f"Error loading tree {tree_id}: {e}") from e

    return TreeGraph(persons=persons, relationships=relationships, marriages=marriages, tree=tree)


def build_graph(tree_graph: TreeGraph) -> nx.DiGraph:
    """
    Build a NetworkX directed graph from the raw collections.

    Parent-child edges point parent -> child with relationship_type "PARENT_OF";
    marriages become a "SPOUSE_OF" edge from spouse1 to spouse2.
    """
    G = nx.DiGraph()

    # Note: use 'person_name' instead of 'name' to avoid conflict with pydot
    for p in tree_graph.persons:
        G.add_node(
            p.person_id,
            person_name=p.full_name,
            first_name=p.first_name,
            gender=p.gender.value,
            date_of_birth=p.date_of_birth,
            date_of_death=p.date_of_death,
        )

    for r in tree_graph.relationships:
        G.add_edge(
            r.parent_id,
            r.child_id,
            relationship_type="PARENT_OF",
            kind=r.relationship_type.value,
        )

    for m in tree_graph.marriages:
        # A parent-child edge between the same pair takes precedence
        if not G.has_edge(m.spouse1_id, m.spouse2_id):
            G.add_edge(
                m.spouse1_id, m.spouse2_id, relationship_type="SPOUSE_OF", is_current=m.is_current
            )

    return G


def parent_child_graph(G: nx.DiGraph) -> nx.DiGraph:
    """Subgraph view containing only PARENT_OF edges."""
    return nx.subgraph_view(
        G, filter_edge=lambda u, v: G.edges[u, v].get("relationship_type") == "PARENT_OF"
    )
