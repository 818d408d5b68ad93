"""Tests for the SQLite store."""

from datetime import date

import pytest

from conftest import make_person
from famtree.database import (
    create_database,
    create_tree,
    get_marriages,
    get_persons,
    get_relationships,
    get_tree,
    list_trees,
    store_data,
)
from famtree.errors import DataLoadError, TreeNotFoundError
from famtree.graph import load_tree_graph
from famtree.models import Gender, Marriage, ParentChildEdge, RelationshipType


@pytest.fixture
def conn():
    conn = create_database(":memory:")
    yield conn
    conn.close()


class TestTrees:

    def test_create_and_get(self, conn):
        tree = create_tree(conn, "Seay Family", user_id=7, description="Paternal line", is_public=True)
        loaded = get_tree(conn, tree.tree_id)
        assert loaded.tree_name == "Seay Family"
        assert loaded.user_id == 7
        assert loaded.is_public

    def test_missing_tree(self, conn):
        with pytest.raises(TreeNotFoundError) as exc:
            get_tree(conn, 42)
        assert exc.value.tree_id == 42

    def test_list_newest_first(self, conn):
        create_tree(conn, "First", user_id=1)
        create_tree(conn, "Second", user_id=2)
        create_tree(conn, "Third", user_id=1)
        assert [t.tree_name for t in list_trees(conn)] == ["Third", "Second", "First"]
        assert [t.tree_name for t in list_trees(conn, user_id=1)] == ["Third", "First"]


class TestStoreAndRead:

    def test_round_trip_fields(self, conn):
        tree = create_tree(conn, "Test")
        person = make_person(
            1,
            "Ada",
            1815,
            middle_name="King",
            last_name="Lovelace",
            gender=Gender.FEMALE,
            is_alive=False,
            date_of_death=date(1852, 11, 27),
            birth_place="London",
            profile_photo="/uploads/ada.jpg",
        )
        store_data(conn, tree.tree_id, [person], [], [])

        [loaded] = get_persons(conn, tree.tree_id)
        assert loaded.full_name == "Ada King Lovelace"
        assert loaded.gender == Gender.FEMALE
        assert loaded.date_of_birth == date(1815, 1, 1)
        assert loaded.date_of_death == date(1852, 11, 27)
        assert not loaded.is_alive
        assert loaded.birth_place == "London"
        assert loaded.profile_photo == "/uploads/ada.jpg"
        assert loaded.tree_id == tree.tree_id

    def test_persons_ordered_by_birth(self, conn):
        tree = create_tree(conn, "Test")
        persons = [make_person(1, born=1950), make_person(2), make_person(3, born=1900), make_person(4)]
        store_data(conn, tree.tree_id, persons, [], [])
        # Unknown dates sort first
        assert [p.person_id for p in get_persons(conn, tree.tree_id)] == [2, 4, 3, 1]

    def test_relationships_and_marriages_keep_insert_order(self, conn):
        tree = create_tree(conn, "Test")
        persons = [make_person(i) for i in range(1, 5)]
        edges = [
            ParentChildEdge(1, 4),
            ParentChildEdge(1, 3, relationship_type=RelationshipType.ADOPTIVE),
        ]
        marriages = [
            Marriage(1, 2, is_current=False, divorce_date=date(1980, 1, 1)),
            Marriage(1, 3, marriage_date=date(1985, 6, 1), marriage_place="Paris"),
        ]
        store_data(conn, tree.tree_id, persons, edges, marriages)

        loaded_edges = get_relationships(conn, tree.tree_id)
        assert [(r.parent_id, r.child_id) for r in loaded_edges] == [(1, 4), (1, 3)]
        assert loaded_edges[1].relationship_type == RelationshipType.ADOPTIVE
        assert loaded_edges[0].relationship_id is not None

        loaded_marriages = get_marriages(conn, tree.tree_id)
        assert [(m.spouse1_id, m.spouse2_id) for m in loaded_marriages] == [(1, 2), (1, 3)]
        assert not loaded_marriages[0].is_current
        assert loaded_marriages[0].divorce_date == date(1980, 1, 1)
        assert loaded_marriages[1].marriage_place == "Paris"

    def test_trees_are_separate(self, conn):
        a = create_tree(conn, "A")
        b = create_tree(conn, "B")
        store_data(conn, a.tree_id, [make_person(1)], [], [])
        store_data(conn, b.tree_id, [make_person(2)], [], [])
        assert [p.person_id for p in get_persons(conn, a.tree_id)] == [1]
        assert [p.person_id for p in get_persons(conn, b.tree_id)] == [2]


class TestLoadTreeGraph:

    def test_loads_all_collections(self, conn, family):
        tree = create_tree(conn, "The Doe Family")
        store_data(conn, tree.tree_id, family.persons, family.relationships, family.marriages)

        graph = load_tree_graph(conn, tree.tree_id)
        assert graph.tree_name == "The Doe Family"
        assert len(graph.persons) == 7
        assert len(graph.relationships) == 8
        assert len(graph.marriages) == 2

    def test_missing_tree(self, conn):
        with pytest.raises(TreeNotFoundError):
            load_tree_graph(conn, 5)

    def test_query_failure(self, conn):
        tree = create_tree(conn, "Broken")
        conn.execute("DROP TABLE marriages")
        with pytest.raises(DataLoadError):
            load_tree_graph(conn, tree.tree_id)
