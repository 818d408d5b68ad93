from datetime import date

import matplotlib
import pytest

from famtree.graph import TreeGraph
from famtree.models import FamilyTree, Gender, Marriage, ParentChildEdge, Person


def pytest_configure(config):
    # No display in test runs
    matplotlib.use("Agg")


def make_person(person_id: int, first_name: str | None = None, born: int | None = None, **kwargs) -> Person:
    return Person(
        person_id=person_id,
        first_name=first_name or f"P{person_id}",
        last_name=kwargs.pop("last_name", "Doe"),
        gender=kwargs.pop("gender", Gender.MALE if person_id % 2 else Gender.FEMALE),
        date_of_birth=date(born, 1, 1) if born else None,
        **kwargs,
    )


def make_graph(
    persons: list[Person],
    edges: list[tuple[int, int]] = (),
    marriages: list[tuple[int, int]] = (),
    name: str = "Test Family",
) -> TreeGraph:
    return TreeGraph(
        persons=list(persons),
        relationships=[ParentChildEdge(parent_id=p, child_id=c) for p, c in edges],
        marriages=[Marriage(spouse1_id=a, spouse2_id=b) for a, b in marriages],
        tree=FamilyTree(tree_id=1, tree_name=name),
    )


@pytest.fixture
def family() -> TreeGraph:
    """
    Grandparents 1 + 2, their children 3 (married to 5) and 4,
    and 3's children 6 and 7.
    """
    persons = [
        make_person(1, "Arthur", 1920),
        make_person(2, "Beatrice", 1922),
        make_person(3, "Charles", 1945),
        make_person(4, "Diana", 1948),
        make_person(5, "Emily", 1947, last_name="Smith"),
        make_person(6, "Frank", 1970),
        make_person(7, "Grace", 1972),
    ]
    edges = [(1, 3), (2, 3), (1, 4), (2, 4), (3, 6), (5, 6), (3, 7), (5, 7)]
    marriages = [(1, 2), (3, 5)]
    return make_graph(persons, edges, marriages, name="The Doe Family")
