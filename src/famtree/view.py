"""The tree view session: load, build, lay out, interact and export."""

from collections.abc import Callable
from dataclasses import dataclass
import logging
import math
import re
import sqlite3
import threading

import pydot

from famtree.config import EXPORT_PRESETS, ViewConfig
from famtree.errors import DataLoadError, ExportError
from famtree.graph import TreeGraph, load_tree_graph
from famtree import hierarchy as tree_ops
from famtree.hierarchy import Hierarchy, build_hierarchy, find_node
from famtree.layout import Bounds, TreeLayout, layout_tree, transition_frames
from famtree.plotting import DrawingSurface, MatplotlibSurface, RecordingSurface, draw_empty_state, draw_layout, to_dot

logger = logging.getLogger(__name__)

# Where the diagram origin (first root generation, centre) sits on the canvas
TOP_MARGIN = 50


@dataclass
class ZoomState:
    x: float = 0.0
    y: float = 0.0
    k: float = 1.0


class Viewport:
    """
    Pan/zoom transform from canvas coordinates to screen pixels:
    ``screen = canvas * k + (x, y)``, with k clamped to [min_scale, max_scale].
    """

    def __init__(self, min_scale: float = 0.1, max_scale: float = 3.0):
        self.min_scale = min_scale
        self.max_scale = max_scale
        self.state = ZoomState()

    @property
    def k(self) -> float:
        return self.state.k

    def is_identity(self) -> bool:
        return self.state == ZoomState()

    def pan(self, dx: float, dy: float):
        self.state = ZoomState(self.state.x + dx, self.state.y + dy, self.state.k)

    def zoom(self, factor: float, cx: float = 0.0, cy: float = 0.0):
        """Scale by factor around the screen point (cx, cy), which stays put."""
        k = min(self.max_scale, max(self.min_scale, self.state.k * factor))
        ratio = k / self.state.k
        self.state = ZoomState(cx - (cx - self.state.x) * ratio, cy - (cy - self.state.y) * ratio, k)

    def reset(self):
        self.state = ZoomState()

    def visible_box(self, width: float, height: float, origin: tuple[float, float]) -> Bounds:
        """Diagram-space region shown on a width x height screen."""
        ox, oy = origin
        s = self.state
        return Bounds(
            -s.x / s.k - ox,
            -s.y / s.k - oy,
            (width - s.x) / s.k - ox,
            (height - s.y) / s.k - oy,
        )

    def to_diagram(self, px: float, py: float, origin: tuple[float, float]) -> tuple[float, float]:
        s = self.state
        return (px - s.x) / s.k - origin[0], (py - s.y) / s.k - origin[1]


def export_filename(tree_name: str, quality: str, ext: str = "jpg") -> str:
    """'My Family  Tree', 'HD' -> 'my-family-tree-tree-HD.jpg'."""
    slug = re.sub(r"\s+", "-", tree_name or "family-tree").lower()
    return f"{slug}-tree-{quality}.{ext}"


def default_surface(config: ViewConfig) -> MatplotlibSurface:
    return MatplotlibSurface(photo_root=config.photo_root)


class TreeView:
    """
    One view of one tree. Owns the loaded graph, the built hierarchy with its
    collapse state, the current layout and the viewport.

    ``loader`` returns a fresh TreeGraph on every reload; by default it reads tree
    ``tree_id`` from ``conn``.
    """

    def __init__(
        self,
        conn: sqlite3.Connection | None = None,
        tree_id: int | None = None,
        config: ViewConfig | None = None,
        loader: Callable[[], TreeGraph] | None = None,
    ):
        if loader is None:
            if conn is None or tree_id is None:
                raise ValueError("TreeView needs either a loader or a connection and tree id")

            def loader() -> TreeGraph:
                return load_tree_graph(conn, tree_id)

        self.loader = loader
        self.config = config or ViewConfig()

        self.graph: TreeGraph | None = None
        self.hierarchy: Hierarchy | None = None
        self.layout: TreeLayout | None = None
        self.viewport = Viewport(self.config.min_scale, self.config.max_scale)

        # Drawing state read by render(); export changes these temporarily
        self.width: float = self.config.width
        self.height: float = self.config.height
        self.view_box: Bounds | None = None  # None: derived from the viewport
        self.show_photos = True

        self._export_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def tree_name(self) -> str:
        return self.graph.tree_name if self.graph else "family-tree"

    @property
    def origin(self) -> tuple[float, float]:
        return self.width / 2, TOP_MARGIN

    def reload(self) -> Hierarchy:
        """
        Fetch all three collections and rebuild everything.

        If the fetch fails, the previous graph, hierarchy, layout and viewport are
        left untouched and the error is raised.
        """
        try:
            graph = self.loader()
        except sqlite3.Error as e:
            raise DataLoadError(f"Error loading tree data: {e}") from e
        return self.show_graph(graph)

    def show_graph(self, graph: TreeGraph) -> Hierarchy:
        hierarchy = build_hierarchy(graph)
        layout = layout_tree(hierarchy, self.config)
        self.graph, self.hierarchy, self.layout = graph, hierarchy, layout
        logger.debug(
            "Built %s: %d root(s), %d visible node(s)",
            graph.tree_name,
            len(hierarchy.roots),
            len(layout.nodes),
        )
        return hierarchy

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def relayout(
        self, origin_id: int | None = None, steps: int = 0
    ) -> list[dict[int, tuple[float, float]]]:
        """
        Recompute the whole layout after a collapse-state change. With ``steps``,
        returns animation frames from the old to the new positions.
        """
        previous = self.layout.positions() if self.layout else {}
        self.layout = layout_tree(self.hierarchy, self.config)
        if not steps:
            return []
        origin = previous.get(origin_id, (0.0, 0.0))
        return transition_frames(previous, self.layout, origin, steps)

    def toggle(self, node_id: int, steps: int = 0) -> list[dict[int, tuple[float, float]]]:
        node = find_node(self.hierarchy, node_id) if self.hierarchy else None
        if node is None:
            raise KeyError(f"Person ID {node_id} is not in the hierarchy")
        tree_ops.toggle(node)
        return self.relayout(node_id, steps)

    def expand_all(self):
        if self.hierarchy is None:
            return
        tree_ops.expand_all(self.hierarchy)
        self.relayout()

    def collapse_all(self):
        if self.hierarchy is None:
            return
        tree_ops.collapse_all(self.hierarchy)
        self.relayout()

    def center(self):
        self.viewport.reset()

    def node_at_screen(self, px: float, py: float):
        """Laid-out node under a screen pixel, if any."""
        if self.layout is None:
            return None
        x, y = self.viewport.to_diagram(px, py, self.origin)
        return self.layout.node_at(x, y, self.config.node_radius)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def current_view_box(self) -> Bounds:
        if self.view_box is not None:
            return self.view_box
        return self.viewport.visible_box(self.width, self.height, self.origin)

    def render(self, surface: DrawingSurface, positions: dict[int, tuple[float, float]] | None = None):
        surface.begin(self.width, self.height, self.current_view_box(), self.config.background)
        if self.hierarchy is None or self.hierarchy.is_empty():
            box = self.current_view_box()
            draw_empty_state(surface, (box.min_x + box.max_x) / 2, (box.min_y + box.max_y) / 2, self.config)
        else:
            draw_layout(surface, self.layout, self.config, self.show_photos, positions)
        surface.end()

    def to_dot(self) -> pydot.Dot:
        return to_dot(self.layout or TreeLayout(), self.tree_name)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def diagram_bounds(self) -> Bounds:
        """Tight bounding box of the whole current diagram, labels included."""
        saved = (self.view_box, self.show_photos)
        try:
            self.view_box = Bounds(0, 0, 1, 1)
            self.show_photos = False
            recorder = RecordingSurface()
            self.render(recorder)
        finally:
            self.view_box, self.show_photos = saved
        return recorder.bbox() or Bounds(0, 0, 0, 0)

    def export_image(
        self,
        target,
        scale: int | None = None,
        quality: str = "HD",
        fmt: str = "jpeg",
        surface_factory: Callable[[ViewConfig], MatplotlibSurface] | None = None,
    ):
        """
        Rasterize the whole diagram (current collapse state, no zoom, initials
        instead of photos) to ``target``, a path or binary file object.

        The drawing size, view box, zoom and photo visibility are restored whether
        or not rasterizing succeeds. Concurrent exports run one after another.
        """
        if self.layout is None:
            raise ExportError("Please wait for the tree to load first")
        scale = scale or EXPORT_PRESETS.get(quality, 2)
        make_surface = surface_factory or default_surface

        with self._export_lock:
            saved_size = (self.width, self.height)
            saved_box = self.view_box
            saved_zoom = self.viewport.state
            saved_photos = self.show_photos
            try:
                self.viewport.reset()
                self.show_photos = False
                box = self.diagram_bounds().padded(self.config.export_padding)
                self.width = math.ceil(box.width)
                self.height = math.ceil(box.height)
                self.view_box = box

                surface = make_surface(self.config)
                self.render(surface)
                surface.rasterize(target, fmt=fmt, scale=scale, quality=self.config.jpeg_quality)
                logger.debug("Exported %s at %dx (%dx%d)", self.tree_name, scale, self.width, self.height)
            except (OSError, ValueError, RuntimeError) as e:
                raise ExportError(f"Error exporting {quality} {fmt.upper()}: {e}") from e
            finally:
                self.width, self.height = saved_size
                self.view_box = saved_box
                self.viewport.state = saved_zoom
                self.show_photos = saved_photos

    def export_filename(self, quality: str = "HD", ext: str = "jpg") -> str:
        return export_filename(self.tree_name, quality, ext)
