"""
Command line entry point.

    famtree init-db family.db
    famtree import-gedcom family.db seay.ged --tree-name "Seay Family"
    famtree list-trees family.db
    famtree validate family.db 1
    famtree render family.db 1                       # interactive window
    famtree render family.db 1 --output out.jpg --quality 4K
    famtree render family.db 1 --output tree.dot --format dot
"""

import argparse
from contextlib import closing
import logging
from pathlib import Path
import sqlite3
import sys

from famtree.config import EXPORT_PRESETS, load_config
from famtree.database import create_database, create_tree, list_trees, store_data
from famtree.errors import FamilyTreeError
from famtree.graph import load_tree_graph
from famtree.parsing import normalize_data, parse_gedcom
from famtree.validation import validate_graph
from famtree.view import TreeView

MAX_WARNINGS = 10


def cmd_init_db(args) -> int:
    with closing(create_database(args.db)):
        pass
    print(f"Created database: {args.db}")
    return 0


def cmd_import_gedcom(args) -> int:
    print(f"Parsing GEDCOM file: {args.gedcom}")
    graph = normalize_data(parse_gedcom(args.gedcom))
    print(
        f"  Found {len(graph.persons)} persons, {len(graph.relationships)} relationships "
        f"and {len(graph.marriages)} marriages"
    )

    with closing(create_database(args.db)) as conn:
        tree = create_tree(conn, args.tree_name or Path(args.gedcom).stem)
        store_data(conn, tree.tree_id, graph.persons, graph.relationships, graph.marriages)
    print(f"Stored as tree {tree.tree_id} ({tree.tree_name}) in {args.db}")
    return 0


def cmd_list_trees(args) -> int:
    with closing(create_database(args.db)) as conn:
        for tree in list_trees(conn):
            print(f"{tree.tree_id:>5}  {tree.tree_name}")
    return 0


def cmd_validate(args) -> int:
    with closing(create_database(args.db)) as conn:
        graph = load_tree_graph(conn, args.tree_id)

    print("Validating tree...")
    warnings = validate_graph(graph)
    if warnings:
        print(f"  Found {len(warnings)} validation warnings:")
        for w in warnings[:MAX_WARNINGS]:
            print(f"    - {w}")
        if len(warnings) > MAX_WARNINGS:
            print(f"    ... and {len(warnings) - MAX_WARNINGS} more")
    else:
        print("  No validation issues found")
    return 0


def cmd_render(args) -> int:
    config = load_config(args.config, photo_root=args.photo_root)
    with closing(create_database(args.db)) as conn:
        view = TreeView(conn, args.tree_id, config=config)
        hierarchy = view.reload()

    print(f"  {len(hierarchy.roots)} root(s), {len(view.layout.nodes)} visible person(s)")
    if hierarchy.used_fallback_root:
        print("  Every person has a parent; started from the oldest person")
    if hierarchy.unreachable_ids:
        print(f"  {len(hierarchy.unreachable_ids)} person(s) could not be placed in the tree")

    if args.collapse_all:
        view.collapse_all()

    if args.output is None:
        # Imported here so that exporting works without a display
        from famtree.viewer import TreeViewer

        TreeViewer(view).show()
        return 0

    output = args.output
    if output.is_dir():
        output = output / view.export_filename(args.quality, ext=args.format or "jpg")

    fmt = args.format or output.suffix.lower().lstrip(".") or "jpeg"
    if fmt == "dot":
        view.to_dot().write(str(output), format="raw")
    else:
        view.export_image(output, scale=args.scale, quality=args.quality, fmt=fmt)
    print(f"Tree saved to {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="famtree", description="Family tree builder and viewer")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="create an empty database")
    p.add_argument("db", type=Path)
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("import-gedcom", help="import a GEDCOM file as a new tree")
    p.add_argument("db", type=Path)
    p.add_argument("gedcom", type=Path)
    p.add_argument("--tree-name")
    p.set_defaults(func=cmd_import_gedcom)

    p = sub.add_parser("list-trees", help="list stored trees")
    p.add_argument("db", type=Path)
    p.set_defaults(func=cmd_list_trees)

    p = sub.add_parser("validate", help="check a tree for data problems")
    p.add_argument("db", type=Path)
    p.add_argument("tree_id", type=int)
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("render", help="show a tree, or export it with --output")
    p.add_argument("db", type=Path)
    p.add_argument("tree_id", type=int)
    p.add_argument("--output", "-o", type=Path, help="image/DOT file or directory")
    p.add_argument("--format", choices=["jpeg", "jpg", "png", "svg", "dot"])
    p.add_argument("--quality", default="HD", help=f"label for the export ({', '.join(EXPORT_PRESETS)})")
    p.add_argument("--scale", type=int, help="pixels per unit (defaults from --quality)")
    p.add_argument("--collapse-all", action="store_true")
    p.add_argument("--config", type=Path, help="JSON file with view settings")
    p.add_argument("--photo-root", help="directory that photo paths are relative to")
    p.set_defaults(func=cmd_render)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (FamilyTreeError, sqlite3.Error, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
