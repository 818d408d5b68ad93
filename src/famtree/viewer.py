"""Interactive matplotlib window for a TreeView: pan, zoom and fold subtrees."""

import matplotlib.pyplot as plt

from famtree.plotting import MatplotlibSurface
from famtree.view import TreeView

ZOOM_STEP = 1.2
TRANSITION_FRAMES = 15


class TreeViewer:
    """
    Mouse and keyboard handling on top of a TreeView.

    - scroll: zoom around the cursor
    - drag: pan
    - click a person: fold/unfold their children
    - ``e`` / ``c`` / ``r``: expand all, collapse all, reset zoom
    """

    def __init__(self, view: TreeView, figure=None):
        self.view = view
        if figure is None:
            figure = plt.figure(figsize=(view.width / 100, view.height / 100), dpi=100)
        self.figure = figure
        self.surface = MatplotlibSurface(figure, photo_root=view.config.photo_root, resize=False)

        self._press: tuple[float, float] | None = None
        self._dragged = False
        self._frames: list[dict[int, tuple[float, float]]] = []
        self._timer = None

        canvas = figure.canvas
        canvas.mpl_connect("scroll_event", self.on_scroll)
        canvas.mpl_connect("button_press_event", self.on_press)
        canvas.mpl_connect("motion_notify_event", self.on_motion)
        canvas.mpl_connect("button_release_event", self.on_release)
        canvas.mpl_connect("key_press_event", self.on_key)
        canvas.mpl_connect("resize_event", self.on_resize)

    def _screen(self, event) -> tuple[float, float]:
        # matplotlib measures display pixels from the bottom-left corner
        return event.x, self.figure.bbox.height - event.y

    def draw(self, positions: dict[int, tuple[float, float]] | None = None):
        self.view.render(self.surface, positions)
        self.figure.canvas.draw_idle()

    def on_scroll(self, event):
        factor = ZOOM_STEP if event.button == "up" else 1 / ZOOM_STEP
        self.view.viewport.zoom(factor, *self._screen(event))
        self.draw()

    def on_press(self, event):
        if event.button == 1:
            self._press = self._screen(event)
            self._dragged = False

    def on_motion(self, event):
        if self._press is None:
            return
        px, py = self._screen(event)
        self.view.viewport.pan(px - self._press[0], py - self._press[1])
        self._press = (px, py)
        self._dragged = True
        self.draw()

    def on_release(self, event):
        if self._press is None:
            return
        was_click = not self._dragged
        self._press = None
        if not was_click:
            return

        hit = self.view.node_at_screen(*self._screen(event))
        if hit is None or hit.node.is_cycle_ref or not hit.node.has_children:
            return
        self.animate(self.view.toggle(hit.id, steps=TRANSITION_FRAMES))

    def on_key(self, event):
        if event.key == "e":
            self.view.expand_all()
        elif event.key == "c":
            self.view.collapse_all()
        elif event.key == "r":
            self.view.center()
        else:
            return
        self.draw()

    def on_resize(self, event):
        self.view.width = self.figure.bbox.width
        self.view.height = self.figure.bbox.height
        self.draw()

    def animate(self, frames: list[dict[int, tuple[float, float]]]):
        """Play transition frames, ending on the freshly computed layout."""
        if self._timer is not None:
            self._timer.stop()
        self._frames = list(frames)
        if not self._frames:
            self.draw()
            return

        interval = max(1, self.view.config.transition_ms // len(self._frames))
        self._timer = self.figure.canvas.new_timer(interval=interval)
        self._timer.add_callback(self._step)
        self._timer.start()

    def _step(self):
        if self._frames:
            self.draw(self._frames.pop(0))
            return
        self._timer.stop()
        self._timer = None
        self.draw()

    def show(self):
        self.draw()
        plt.show()
