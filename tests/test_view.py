"""Tests for the tree view session: reload, interaction, viewport and export."""

import io
import sqlite3

import pytest

from conftest import make_graph
from famtree.config import ViewConfig
from famtree.errors import DataLoadError, ExportError
from famtree.layout import Bounds
from famtree.plotting import MatplotlibSurface, RecordingSurface
from famtree.view import TreeView, Viewport, ZoomState, export_filename


def view_of(graph, config=None) -> TreeView:
    view = TreeView(loader=lambda: graph, config=config)
    view.reload()
    return view


class FailingSurface(MatplotlibSurface):
    def rasterize(self, target, fmt="jpeg", scale=1, quality=95):
        raise OSError("disk full")


class TestReload:

    def test_needs_a_source(self):
        with pytest.raises(ValueError):
            TreeView()

    def test_reload_builds_everything(self, family):
        view = view_of(family)
        assert view.tree_name == "The Doe Family"
        assert [r.id for r in view.hierarchy.roots] == [1]
        assert len(view.layout.nodes) == 5

    def test_failed_reload_keeps_previous_state(self, family):
        graphs = [family]

        def loader():
            if not graphs:
                raise sqlite3.OperationalError("database is locked")
            return graphs.pop()

        view = TreeView(loader=loader)
        view.reload()
        hierarchy, layout = view.hierarchy, view.layout

        with pytest.raises(DataLoadError):
            view.reload()
        assert view.hierarchy is hierarchy
        assert view.layout is layout
        assert view.graph is family

    def test_reload_resets_collapse_state(self, family):
        view = view_of(family)
        view.collapse_all()
        view.reload()
        assert len(view.layout.nodes) == 5

    def test_reads_from_database(self, family):
        from famtree.database import create_database, create_tree, store_data

        conn = create_database(":memory:")
        tree_id = create_tree(conn, "The Doe Family").tree_id
        store_data(conn, tree_id, family.persons, family.relationships, family.marriages)

        view = TreeView(conn=conn, tree_id=tree_id)
        view.reload()
        assert [r.id for r in view.hierarchy.roots] == [1]
        assert view.tree_name == "The Doe Family"


class TestInteraction:

    def test_toggle_relayouts(self, family):
        view = view_of(family)
        view.toggle(3)
        assert [n.id for n in view.layout.nodes] == [1, 3, 4]
        view.toggle(3)
        assert [n.id for n in view.layout.nodes] == [1, 3, 6, 7, 4]

    def test_toggle_frames(self, family):
        view = view_of(family)
        view.toggle(3)
        frames = view.toggle(3, steps=5)
        assert len(frames) == 5
        # Revealed children start at their parent's position
        assert frames[0][6][0] > -180

    def test_toggle_unknown(self, family):
        view = view_of(family)
        with pytest.raises(KeyError):
            view.toggle(99)

    def test_expand_and_collapse_all(self, family):
        view = view_of(family)
        view.collapse_all()
        assert [n.id for n in view.layout.nodes] == [1]
        view.expand_all()
        assert [n.id for n in view.layout.nodes] == [1, 3, 6, 7, 4]

    def test_node_at_screen(self, family):
        view = view_of(family)
        ox, oy = view.origin
        assert view.node_at_screen(ox, oy).id == 1
        assert view.node_at_screen(ox - 90, oy + 150).id == 3
        assert view.node_at_screen(5, 5) is None

    def test_empty_tree_renders_message(self):
        view = view_of(make_graph([]))
        surface = RecordingSurface()
        view.render(surface)
        assert "No family members yet" in surface.texts()


class TestViewport:

    def test_zoom_is_clamped(self):
        viewport = Viewport(0.1, 3.0)
        viewport.zoom(100)
        assert viewport.k == 3.0
        viewport.zoom(0.0001)
        assert viewport.k == 0.1

    def test_zoom_keeps_cursor_point(self):
        viewport = Viewport()
        viewport.pan(20, 10)
        before = viewport.to_diagram(300, 200, (0, 0))
        viewport.zoom(2, 300, 200)
        assert viewport.to_diagram(300, 200, (0, 0)) == pytest.approx(before)

    def test_reset(self):
        viewport = Viewport()
        viewport.pan(5, 5)
        viewport.zoom(2)
        assert not viewport.is_identity()
        viewport.reset()
        assert viewport.state == ZoomState()

    def test_visible_box(self):
        viewport = Viewport()
        box = viewport.visible_box(1200, 600, (600, 50))
        assert (box.min_x, box.min_y, box.max_x, box.max_y) == (-600, -50, 600, 550)
        viewport.zoom(2)
        box = viewport.visible_box(1200, 600, (600, 50))
        assert (box.width, box.height) == (600, 300)


class TestExport:

    def test_export_filename(self):
        assert export_filename("My Family  Tree", "HD") == "my-family-tree-tree-HD.jpg"
        assert export_filename("Smith", "4K", "png") == "smith-tree-4K.png"
        assert export_filename("", "HD") == "family-tree-tree-HD.jpg"
        # Whitespace at either end is kept as dashes
        assert export_filename("  My Tree ", "HD") == "-my-tree--tree-HD.jpg"

    def test_exports_jpeg(self, family):
        view = view_of(family)
        buf = io.BytesIO()
        view.export_image(buf, quality="HD")
        assert buf.getvalue()[:3] == b"\xff\xd8\xff"

    def test_exports_png(self, family, tmp_path):
        view = view_of(family)
        out = tmp_path / view.export_filename("HD", "png")
        view.export_image(out, scale=1, fmt="png")
        assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_export_restores_view_state(self, family):
        view = view_of(family)
        view.viewport.zoom(2, 100, 100)
        zoom = view.viewport.state
        view.export_image(io.BytesIO(), scale=1)

        assert view.viewport.state == zoom
        assert (view.width, view.height) == (1200, 600)
        assert view.view_box is None
        assert view.show_photos

    def test_failed_export_restores_view_state(self, family):
        view = view_of(family)
        view.viewport.pan(30, 40)
        zoom = view.viewport.state

        with pytest.raises(ExportError, match="disk full"):
            view.export_image(io.BytesIO(), surface_factory=lambda config: FailingSurface())

        assert view.viewport.state == zoom
        assert (view.width, view.height) == (1200, 600)
        assert view.view_box is None
        assert view.show_photos

    def test_export_before_load(self, family):
        view = TreeView(loader=lambda: family)
        with pytest.raises(ExportError):
            view.export_image(io.BytesIO())

    def test_diagram_bounds_cover_labels(self, family):
        view = view_of(family)
        box = view.diagram_bounds()
        # Frank's circle at x=-180 and the name labels above the root
        assert box.min_x <= -210
        assert box.min_y < -30
        assert box.max_y > 330

    def test_export_size_follows_diagram(self, family):
        view = view_of(family, ViewConfig(export_padding=10))
        sizes = []

        class Spy(RecordingSurface):
            def rasterize(self, target, fmt="jpeg", scale=1, quality=95):
                sizes.append((self.width, self.height, self.view_box))

        view.export_image(io.BytesIO(), surface_factory=lambda config: Spy())
        [(width, height, box)] = sizes
        assert isinstance(box, Bounds)
        assert width >= box.width
        assert height >= box.height
