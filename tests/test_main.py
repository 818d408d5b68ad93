"""End-to-end tests for the command line."""

import sqlite3

import pytest

from famtree.main import main
from test_parsing import GEDCOM


@pytest.fixture
def db_with_tree(tmp_path):
    gedcom = tmp_path / "smith.ged"
    gedcom.write_text(GEDCOM, encoding="utf-8")
    db = tmp_path / "family.db"
    assert main(["import-gedcom", str(db), str(gedcom), "--tree-name", "Smith Family"]) == 0
    return db


def test_init_db(tmp_path, capsys):
    db = tmp_path / "new.db"
    assert main(["init-db", str(db)]) == 0
    assert db.exists()
    assert "Created database" in capsys.readouterr().out


def test_list_trees(db_with_tree, capsys):
    assert main(["list-trees", str(db_with_tree)]) == 0
    assert "Smith Family" in capsys.readouterr().out


def test_validate(db_with_tree, capsys):
    assert main(["validate", str(db_with_tree), "1"]) == 0
    assert "No validation issues found" in capsys.readouterr().out


def test_render_dot(db_with_tree, tmp_path):
    out = tmp_path / "tree.dot"
    assert main(["render", str(db_with_tree), "1", "--output", str(out)]) == 0
    text = out.read_text()
    assert "John" in text
    assert "Tom" in text


def test_render_png_into_directory(db_with_tree, tmp_path):
    out_dir = tmp_path / "exports"
    out_dir.mkdir()
    assert main(["render", str(db_with_tree), "1", "-o", str(out_dir), "--format", "png", "--scale", "1"]) == 0
    out = out_dir / "smith-family-tree-HD.png"
    assert out.read_bytes()[:4] == b"\x89PNG"


def test_missing_tree(db_with_tree, capsys):
    assert main(["validate", str(db_with_tree), "99"]) == 1
    assert "Tree ID 99 not found" in capsys.readouterr().err


@pytest.mark.parametrize("command", ["validate", "render"])
def test_connection_closed_when_tree_missing(db_with_tree, monkeypatch, command):
    import famtree.main

    opened = []

    def create_database(path):
        conn = real_create_database(path)
        opened.append(conn)
        return conn

    real_create_database = famtree.main.create_database
    monkeypatch.setattr(famtree.main, "create_database", create_database)

    assert main([command, str(db_with_tree), "99"]) == 1
    assert len(opened) == 1
    with pytest.raises(sqlite3.ProgrammingError):
        opened[0].execute("SELECT 1")
