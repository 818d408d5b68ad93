"""Drawing the laid-out tree: surfaces, the node/edge painter and DOT export."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from pathlib import Path

from matplotlib.figure import Figure
import matplotlib.image as mpimg
from matplotlib.patches import Circle, PathPatch
from matplotlib.path import Path as MplPath
import pydot

from famtree.config import ViewConfig
from famtree.layout import Bounds, TreeLayout
from famtree.models import Gender, Person

logger = logging.getLogger(__name__)

NAME_SIZE = 14
DATES_SIZE = 11
INITIALS_SIZE = 19
INDICATOR_SIZE = 14


class DrawingSurface(ABC):
    """
    Minimal vector drawing interface, in diagram units.

    ``begin`` fixes the output size (pixels at scale 1) and the diagram region
    (view box) mapped onto it. y grows downwards.
    """

    @abstractmethod
    def begin(self, width: float, height: float, view_box: Bounds, background: str): ...

    @abstractmethod
    def circle(self, cx: float, cy: float, r: float, fill: str, stroke: str, stroke_width: float): ...

    @abstractmethod
    def photo(self, source: str, cx: float, cy: float, r: float) -> bool:
        """Draw an image clipped to a circle. Returns False if it could not be drawn."""

    @abstractmethod
    def text(self, x: float, y: float, s: str, size: float, color: str, weight: str = "normal"): ...

    @abstractmethod
    def curve(self, points: list[tuple[float, float]], color: str, width: float):
        """Cubic Bezier through four control points."""

    @abstractmethod
    def line(self, x1: float, y1: float, x2: float, y2: float, color: str, width: float): ...

    def end(self):
        pass


@dataclass
class Shape:
    kind: str
    attrs: dict = field(default_factory=dict)


class RecordingSurface(DrawingSurface):
    """Keeps every primitive it is asked to draw; used for bounding boxes and tests."""

    def __init__(self, photos_available: bool = True):
        self.shapes: list[Shape] = []
        self.photos_available = photos_available
        self.width = 0.0
        self.height = 0.0
        self.view_box: Bounds | None = None

    def begin(self, width, height, view_box, background):
        self.shapes = []
        self.width = width
        self.height = height
        self.view_box = view_box

    def circle(self, cx, cy, r, fill, stroke, stroke_width):
        self.shapes.append(
            Shape("circle", dict(cx=cx, cy=cy, r=r, fill=fill, stroke=stroke, stroke_width=stroke_width))
        )

    def photo(self, source, cx, cy, r):
        if not self.photos_available:
            return False
        self.shapes.append(Shape("photo", dict(source=source, cx=cx, cy=cy, r=r)))
        return True

    def text(self, x, y, s, size, color, weight="normal"):
        self.shapes.append(Shape("text", dict(x=x, y=y, s=s, size=size, color=color, weight=weight)))

    def curve(self, points, color, width):
        self.shapes.append(Shape("curve", dict(points=list(points), color=color, width=width)))

    def line(self, x1, y1, x2, y2, color, width):
        self.shapes.append(Shape("line", dict(x1=x1, y1=y1, x2=x2, y2=y2, color=color, width=width)))

    def of_kind(self, kind: str) -> list[Shape]:
        return [s for s in self.shapes if s.kind == kind]

    def texts(self) -> list[str]:
        return [s.attrs["s"] for s in self.of_kind("text")]

    def bbox(self) -> Bounds | None:
        """Tight box around everything drawn. Text width is estimated from its length."""
        boxes = []
        for shape in self.shapes:
            a = shape.attrs
            if shape.kind in ("circle", "photo"):
                boxes.append(Bounds(a["cx"] - a["r"], a["cy"] - a["r"], a["cx"] + a["r"], a["cy"] + a["r"]))
            elif shape.kind == "text":
                half = len(a["s"]) * a["size"] * 0.3
                boxes.append(Bounds(a["x"] - half, a["y"] - a["size"] / 2, a["x"] + half, a["y"] + a["size"] / 2))
            elif shape.kind == "curve":
                xs = [p[0] for p in a["points"]]
                ys = [p[1] for p in a["points"]]
                boxes.append(Bounds(min(xs), min(ys), max(xs), max(ys)))
            elif shape.kind == "line":
                boxes.append(
                    Bounds(min(a["x1"], a["x2"]), min(a["y1"], a["y2"]), max(a["x1"], a["x2"]), max(a["y1"], a["y2"]))
                )
        if not boxes:
            return None
        box = boxes[0]
        for b in boxes[1:]:
            box = box.union(b)
        return box


class MatplotlibSurface(DrawingSurface):
    """
    Draws onto a matplotlib figure whose axes span the whole canvas.

    Sizes given in diagram units (font sizes, line widths) are converted to points
    so that text and strokes scale with the view box like the rest of the drawing.
    """

    DPI = 100

    def __init__(self, figure: Figure | None = None, photo_root: str | None = None, resize: bool = True):
        self.figure = figure if figure is not None else Figure()
        self.resize = resize  # False for a window the user sizes
        self.photo_root = Path(photo_root) if photo_root else None
        self.ax = None
        self.background = "white"
        self._px_per_unit = 1.0

    def begin(self, width, height, view_box, background):
        self.figure.clear()
        if self.resize:
            self.figure.set_dpi(self.DPI)
            self.figure.set_size_inches(width / self.DPI, height / self.DPI, forward=True)
        self.figure.set_facecolor(background)
        self.background = background

        self.ax = self.figure.add_axes((0, 0, 1, 1))
        self.ax.set_axis_off()
        self.ax.set_facecolor(background)
        self.ax.set_xlim(view_box.min_x, view_box.max_x)
        self.ax.set_ylim(view_box.max_y, view_box.min_y)  # y grows downwards
        self.ax.set_autoscale_on(False)
        self._px_per_unit = width / view_box.width if view_box.width else 1.0

    def _pt(self, units: float) -> float:
        return units * self._px_per_unit * 72 / self.DPI

    def circle(self, cx, cy, r, fill, stroke, stroke_width):
        self.ax.add_patch(
            Circle((cx, cy), r, facecolor=fill, edgecolor=stroke, linewidth=self._pt(stroke_width), zorder=3)
        )

    def _resolve(self, source: str) -> Path | None:
        if source.startswith(("http://", "https://")):
            return None
        if self.photo_root is None:
            return Path(source)
        # Stored references look like "/uploads/photo.jpg", relative to the upload root
        return self.photo_root / source.lstrip("/")

    def photo(self, source, cx, cy, r):
        path = self._resolve(source)
        if path is None:
            return False
        try:
            img = mpimg.imread(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not load photo %s: %s", source, e)
            return False

        inner = r - 2
        im = self.ax.imshow(
            img,
            extent=(cx - inner, cx + inner, cy + inner, cy - inner),
            aspect="auto",
            interpolation="antialiased",
            zorder=4,
        )
        im.set_clip_path(Circle((cx, cy), inner, transform=self.ax.transData))
        return True

    def text(self, x, y, s, size, color, weight="normal"):
        self.ax.text(
            x,
            y,
            s,
            fontsize=self._pt(size),
            color=color,
            fontweight=weight,
            ha="center",
            va="center",
            zorder=5,
        )

    def curve(self, points, color, width):
        codes = [MplPath.MOVETO, MplPath.CURVE4, MplPath.CURVE4, MplPath.CURVE4]
        self.ax.add_patch(
            PathPatch(MplPath(points, codes), facecolor="none", edgecolor=color, linewidth=self._pt(width), zorder=1)
        )

    def line(self, x1, y1, x2, y2, color, width):
        self.ax.plot([x1, x2], [y1, y2], color=color, linewidth=self._pt(width), zorder=2)

    def rasterize(self, target, fmt: str = "jpeg", scale: int = 1, quality: int = 95):
        """Write the figure to a path or binary file object at ``scale`` pixels per unit."""
        kwargs = {}
        if fmt in ("jpeg", "jpg"):
            kwargs["pil_kwargs"] = {"quality": quality}
        self.figure.savefig(
            target,
            format=fmt,
            dpi=self.DPI * scale,
            facecolor=self.background,
            **kwargs,
        )


# ============================================================================
# Painting
# ============================================================================


def gender_color(gender: Gender, config: ViewConfig) -> str:
    if gender == Gender.MALE:
        return config.male_color
    if gender == Gender.FEMALE:
        return config.female_color
    return config.neutral_color


def life_span(person: Person) -> str:
    """'1950 - Present', '1950 - 2010', '? - 2010'."""
    birth = str(person.date_of_birth.year) if person.date_of_birth else "?"
    if person.is_alive:
        death = "Present"
    else:
        death = str(person.date_of_death.year) if person.date_of_death else "?"
    return f"{birth} - {death}"


def _draw_person(
    surface: DrawingSurface,
    person: Person,
    label: str,
    x: float,
    y: float,
    config: ViewConfig,
    show_photos: bool,
    fill: str,
):
    r = config.node_radius
    surface.circle(x, y, r, fill=fill, stroke=gender_color(person.gender, config), stroke_width=3)

    drawn = False
    if show_photos and person.profile_photo:
        drawn = surface.photo(person.profile_photo, x, y, r)
    if not drawn:
        surface.text(x, y, person.initials, INITIALS_SIZE, "white", weight="semibold")

    surface.text(x, y - r - NAME_SIZE, label, NAME_SIZE, config.text_color, weight="semibold")
    surface.text(x, y + r + DATES_SIZE * 1.5, life_span(person), DATES_SIZE, config.text_color)


def draw_empty_state(surface: DrawingSurface, x: float, y: float, config: ViewConfig):
    surface.text(x, y, "No family members yet", 22, config.text_color, weight="bold")
    surface.text(x, y + 32, "Add your first family member to start building your tree!", 14, config.text_color)


def draw_layout(
    surface: DrawingSurface,
    layout: TreeLayout,
    config: ViewConfig,
    show_photos: bool = True,
    positions: dict[int, tuple[float, float]] | None = None,
):
    """
    Paint links, nodes and spouses. ``positions`` overrides node coordinates (used
    for animation frames); spouses and links follow their node.
    """

    def at(node_id: int, x: float, y: float) -> tuple[float, float]:
        if positions is None:
            return x, y
        return positions.get(node_id, (x, y))

    r = config.node_radius
    coords = {}
    for n in layout.nodes:
        if n.node.is_cycle_ref:
            coords[id(n)] = (n.x, n.y)
        else:
            coords[id(n)] = at(n.id, n.x, n.y)

    # Links first so nodes are painted over them
    by_id = {n.id: n for n in layout.nodes if not n.node.is_cycle_ref}
    for n in layout.nodes:
        if n.parent_id is None:
            continue
        sx, sy = coords[id(by_id[n.parent_id])]
        tx, ty = coords[id(n)]
        mid = (sy + ty) / 2
        surface.curve([(sx, sy), (sx, mid), (tx, mid), (tx, ty)], config.link_color, 2)

    for n in layout.nodes:
        node = n.node
        x, y = coords[id(n)]
        fill = config.collapsed_fill if node.collapsed else config.node_fill
        _draw_person(surface, node.data, node.name, x, y, config, show_photos, fill)

        if node.spouse is not None:
            sx = x + config.spouse_offset
            surface.line(x + r, y, sx - r, y, config.link_color, 2)
            _draw_person(surface, node.spouse.data, node.spouse.name, sx, y, config, show_photos, config.node_fill)

        if node.has_children:
            surface.text(x + r * 0.8, y - r * 0.8, "+" if node.collapsed else "-", INDICATOR_SIZE, config.text_color)


# ============================================================================
# DOT export
# ============================================================================


def to_dot(layout: TreeLayout, name: str = "family_tree") -> pydot.Dot:
    """
    Graphviz description of the visible hierarchy. Each node and spouse gets its
    own DOT node, so a person drawn twice (cycle leaf, spouse of two nodes) stays
    two shapes like on screen.
    """
    P = pydot.Dot(name.replace(" ", "_") or "family_tree", graph_type="digraph")
    P.set("rankdir", "TB")
    P.set("nodesep", "0.4")
    P.set("ranksep", "0.6")

    fill = {Gender.MALE: "lightblue", Gender.FEMALE: "lightpink"}

    def person_node(dot_id: str, person: Person, label: str) -> pydot.Node:
        return pydot.Node(
            dot_id,
            label=f"{label}\n{life_span(person)}",
            shape="box",
            style="rounded,filled",
            fillcolor=fill.get(person.gender, "lightgray"),
            fontsize="10",
        )

    dot_ids: dict[int, str] = {}
    for i, n in enumerate(layout.nodes):
        dot_id = f"n{i}"
        if not n.node.is_cycle_ref:
            dot_ids.setdefault(n.id, dot_id)
        P.add_node(person_node(dot_id, n.node.data, n.node.name))

        if n.parent_id is not None:
            P.add_edge(pydot.Edge(dot_ids[n.parent_id], dot_id, color="darkgray"))

        spouse = n.node.spouse
        if spouse is not None:
            spouse_dot_id = f"{dot_id}s"
            P.add_node(person_node(spouse_dot_id, spouse.data, spouse.name))
            P.add_edge(pydot.Edge(dot_id, spouse_dot_id, dir="none", color="darkgray", constraint="false"))

            sg = pydot.Subgraph(f"couple_{i}", rank="same")
            sg.add_node(pydot.Node(dot_id))
            sg.add_node(pydot.Node(spouse_dot_id))
            P.add_subgraph(sg)

    return P
