"""SQLite storage for family trees, persons, relationships and marriages."""

from datetime import date
from pathlib import Path
import sqlite3

from famtree.errors import TreeNotFoundError
from famtree.models import (
    FamilyTree,
    Gender,
    Marriage,
    ParentChildEdge,
    Person,
    RelationshipType,
)


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Create SQLite database with tree, person, relationship and marriage tables."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON")
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS family_trees (
            tree_id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            tree_name TEXT NOT NULL,
            description TEXT,
            is_public INTEGER NOT NULL DEFAULT 0
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS persons (
            person_id INTEGER PRIMARY KEY,
            tree_id INTEGER NOT NULL,
            first_name TEXT NOT NULL,
            middle_name TEXT,
            last_name TEXT,
            maiden_name TEXT,
            gender TEXT NOT NULL,
            date_of_birth TEXT,
            date_of_death TEXT,
            is_alive INTEGER NOT NULL DEFAULT 1,
            birth_place TEXT,
            death_place TEXT,
            occupation TEXT,
            bio TEXT,
            profile_photo TEXT,
            FOREIGN KEY (tree_id) REFERENCES family_trees(tree_id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS relationships (
            relationship_id INTEGER PRIMARY KEY AUTOINCREMENT,
            tree_id INTEGER NOT NULL,
            parent_id INTEGER NOT NULL,
            child_id INTEGER NOT NULL,
            relationship_type TEXT NOT NULL DEFAULT 'Biological',
            FOREIGN KEY (tree_id) REFERENCES family_trees(tree_id) ON DELETE CASCADE,
            FOREIGN KEY (parent_id) REFERENCES persons(person_id) ON DELETE CASCADE,
            FOREIGN KEY (child_id) REFERENCES persons(person_id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS marriages (
            marriage_id INTEGER PRIMARY KEY AUTOINCREMENT,
            tree_id INTEGER NOT NULL,
            spouse1_id INTEGER NOT NULL,
            spouse2_id INTEGER NOT NULL,
            marriage_date TEXT,
            marriage_place TEXT,
            divorce_date TEXT,
            is_current INTEGER NOT NULL DEFAULT 1,
            marriage_type TEXT NOT NULL DEFAULT 'Marriage',
            FOREIGN KEY (tree_id) REFERENCES family_trees(tree_id) ON DELETE CASCADE,
            FOREIGN KEY (spouse1_id) REFERENCES persons(person_id) ON DELETE CASCADE,
            FOREIGN KEY (spouse2_id) REFERENCES persons(person_id) ON DELETE CASCADE
        )
    """)

    conn.commit()
    return conn


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _date(value: str | None) -> date | None:
    # Stored values may carry a time part ("1950-02-01 00:00:00")
    return date.fromisoformat(value[:10]) if value else None


def create_tree(
    conn: sqlite3.Connection,
    tree_name: str,
    user_id: int | None = None,
    description: str | None = None,
    is_public: bool = False,
) -> FamilyTree:
    """Insert a new tree and return it with its assigned id."""
    cursor = conn.execute(
        "INSERT INTO family_trees (user_id, tree_name, description, is_public) VALUES (?, ?, ?, ?)",
        (user_id, tree_name, description, int(is_public)),
    )
    conn.commit()
    return FamilyTree(
        tree_id=cursor.lastrowid,
        tree_name=tree_name,
        user_id=user_id,
        description=description,
        is_public=is_public,
    )


def store_data(
    conn: sqlite3.Connection,
    tree_id: int,
    persons: list[Person],
    relationships: list[ParentChildEdge],
    marriages: list[Marriage],
):
    """Insert persons, parent-child relationships and marriages into one tree."""
    cursor = conn.cursor()

    # Insert persons
    cursor.executemany(
        """
        INSERT OR REPLACE INTO persons
        (person_id, tree_id, first_name, middle_name, last_name, maiden_name, gender,
         date_of_birth, date_of_death, is_alive, birth_place, death_place, occupation, bio,
         profile_photo)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                p.person_id,
                tree_id,
                p.first_name,
                p.middle_name,
                p.last_name,
                p.maiden_name,
                p.gender.value,
                _iso(p.date_of_birth),
                _iso(p.date_of_death),
                int(p.is_alive),
                p.birth_place,
                p.death_place,
                p.occupation,
                p.bio,
                p.profile_photo,
            )
            for p in persons
        ],
    )

    # Insert relationships
    cursor.executemany(
        """
        INSERT INTO relationships (tree_id, parent_id, child_id, relationship_type)
        VALUES (?, ?, ?, ?)
        """,
        [(tree_id, r.parent_id, r.child_id, r.relationship_type.value) for r in relationships],
    )

    # Insert marriages
    cursor.executemany(
        """
        INSERT INTO marriages
        (tree_id, spouse1_id, spouse2_id, marriage_date, marriage_place, divorce_date,
         is_current, marriage_type)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                tree_id,
                m.spouse1_id,
                m.spouse2_id,
                _iso(m.marriage_date),
                m.marriage_place,
                _iso(m.divorce_date),
                int(m.is_current),
                m.marriage_type,
            )
            for m in marriages
        ],
    )

    conn.commit()


def get_tree(conn: sqlite3.Connection, tree_id: int) -> FamilyTree:
    row = conn.execute(
        "SELECT tree_id, tree_name, user_id, description, is_public FROM family_trees WHERE tree_id = ?",
        (tree_id,),
    ).fetchone()
    if row is None:
        raise TreeNotFoundError(tree_id)
    return FamilyTree(
        tree_id=row[0], tree_name=row[1], user_id=row[2], description=row[3], is_public=bool(row[4])
    )


def list_trees(conn: sqlite3.Connection, user_id: int | None = None) -> list[FamilyTree]:
    """List trees, newest first, optionally restricted to one owner."""
    query = "SELECT tree_id, tree_name, user_id, description, is_public FROM family_trees"
    params: tuple = ()
    if user_id is not None:
        query += " WHERE user_id = ?"
        params = (user_id,)
    query += " ORDER BY tree_id DESC"
    return [
        FamilyTree(tree_id=r[0], tree_name=r[1], user_id=r[2], description=r[3], is_public=bool(r[4]))
        for r in conn.execute(query, params).fetchall()
    ]


def get_persons(conn: sqlite3.Connection, tree_id: int) -> list[Person]:
    """All persons of a tree, ordered by date of birth (unknown dates first)."""
    cursor = conn.execute(
        """
        SELECT person_id, tree_id, first_name, middle_name, last_name, maiden_name, gender,
               date_of_birth, date_of_death, is_alive, birth_place, death_place, occupation,
               bio, profile_photo
        FROM persons WHERE tree_id = ?
        ORDER BY date_of_birth, person_id
        """,
        (tree_id,),
    )
    return [
        Person(
            person_id=row[0],
            tree_id=row[1],
            first_name=row[2],
            middle_name=row[3],
            last_name=row[4],
            maiden_name=row[5],
            gender=Gender.parse(row[6]),
            date_of_birth=_date(row[7]),
            date_of_death=_date(row[8]),
            is_alive=bool(row[9]),
            birth_place=row[10],
            death_place=row[11],
            occupation=row[12],
            bio=row[13],
            profile_photo=row[14],
        )
        for row in cursor.fetchall()
    ]


def get_relationships(conn: sqlite3.Connection, tree_id: int) -> list[ParentChildEdge]:
    cursor = conn.execute(
        """
        SELECT relationship_id, parent_id, child_id, relationship_type
        FROM relationships WHERE tree_id = ?
        ORDER BY relationship_id
        """,
        (tree_id,),
    )
    return [
        ParentChildEdge(
            relationship_id=row[0],
            parent_id=row[1],
            child_id=row[2],
            relationship_type=RelationshipType(row[3]),
        )
        for row in cursor.fetchall()
    ]


def get_marriages(conn: sqlite3.Connection, tree_id: int) -> list[Marriage]:
    cursor = conn.execute(
        """
        SELECT marriage_id, spouse1_id, spouse2_id, marriage_date, marriage_place,
               divorce_date, is_current, marriage_type
        FROM marriages WHERE tree_id = ?
        ORDER BY marriage_id
        """,
        (tree_id,),
    )
    return [
        Marriage(
            marriage_id=row[0],
            spouse1_id=row[1],
            spouse2_id=row[2],
            marriage_date=_date(row[3]),
            marriage_place=row[4],
            divorce_date=_date(row[5]),
            is_current=bool(row[6]),
            marriage_type=row[7],
        )
        for row in cursor.fetchall()
    ]
