"""Layout, rendering and export settings."""

from dataclasses import dataclass, fields, replace
import json
from pathlib import Path

# Canvas
WIDTH = 1200
HEIGHT = 600
BACKGROUND = "#1a1a2e"

# Nodes and generations
NODE_RADIUS = 30
LEVEL_HEIGHT = 150
SPOUSE_OFFSET = 80
NODE_SPACING = 120
SIBLING_SEPARATION = 1.5
COUSIN_SEPARATION = 2.0

# Colours
MALE_COLOR = "#3b82f6"
FEMALE_COLOR = "#ec4899"
NEUTRAL_COLOR = "#6366f1"
NODE_FILL = "#16213e"
COLLAPSED_FILL = "#0f3460"
LINK_COLOR = "#94a3b8"
TEXT_COLOR = "#e2e8f0"

# Interaction
SCALE_EXTENT = (0.1, 3.0)
TRANSITION_MS = 750

# Export
EXPORT_PADDING = 100
JPEG_QUALITY = 95
EXPORT_PRESETS = {"HD": 2, "4K": 4}


@dataclass(frozen=True)
class ViewConfig:
    width: int = WIDTH
    height: int = HEIGHT
    background: str = BACKGROUND
    node_radius: float = NODE_RADIUS
    level_height: float = LEVEL_HEIGHT
    spouse_offset: float = SPOUSE_OFFSET
    node_spacing: float = NODE_SPACING
    sibling_separation: float = SIBLING_SEPARATION
    cousin_separation: float = COUSIN_SEPARATION
    fit_width: float | None = None  # scale x to this width instead of node_spacing
    male_color: str = MALE_COLOR
    female_color: str = FEMALE_COLOR
    neutral_color: str = NEUTRAL_COLOR
    node_fill: str = NODE_FILL
    collapsed_fill: str = COLLAPSED_FILL
    link_color: str = LINK_COLOR
    text_color: str = TEXT_COLOR
    min_scale: float = SCALE_EXTENT[0]
    max_scale: float = SCALE_EXTENT[1]
    transition_ms: int = TRANSITION_MS
    export_padding: float = EXPORT_PADDING
    jpeg_quality: int = JPEG_QUALITY
    photo_root: str | None = None  # base directory for relative photo paths


def load_config(path: Path | None = None, **overrides) -> ViewConfig:
    """
    Build a ViewConfig from defaults, an optional JSON file and keyword overrides.

    Raises ValueError for keys that are not ViewConfig fields.
    """
    values: dict = {}
    if path is not None:
        values.update(json.loads(Path(path).read_text(encoding="utf-8")))
    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(ViewConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    return replace(ViewConfig(), **values)
