"""Matplotlib preview of a computed layout (debugging aid, not a renderer)."""

from __future__ import annotations

import colorsys
import logging
from pathlib import Path
from typing import Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.patches import Circle, Rectangle  # noqa: E402

from .types import LayoutBounds, PositionedEntity

logger = logging.getLogger(__name__)


def render_layout_png(
    path: Path,
    entities: Sequence[PositionedEntity],
    bounds: LayoutBounds,
    *,
    title: Optional[str] = None,
    label_limit: int = 40,
) -> None:
    fig, ax = plt.subplots(figsize=(8, 8 * bounds.height / max(bounds.width, 1e-6)))
    ax.add_patch(Rectangle((0.0, 0.0), bounds.width, bounds.height, fill=False, linestyle="--", linewidth=0.8))
    for index, entity in enumerate(entities):
        color = "#1f77b4"
        if entity.payload:
            color = _css_color(entity.payload.get("color")) or color
        ax.add_patch(
            Circle(entity.position.as_tuple(), entity.radius, facecolor=color, edgecolor="black", alpha=0.45)
        )
        if index < label_limit:
            ax.text(entity.position.x, entity.position.y, entity.id[:8], fontsize=6, ha="center", va="center")

    ax.set_aspect("equal", adjustable="box")
    ax.set_xlim(0.0, bounds.width)
    # Screen space grows downwards.
    ax.set_ylim(bounds.height, 0.0)
    if title:
        ax.set_title(title)
    fig.tight_layout()
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path)
    plt.close(fig)
    logger.info("Wrote layout preview for %d markers to %s", len(entities), path)


def _css_color(value: object) -> Optional[str]:
    """Translate ``hsl(h, s%, l%)`` strings into a matplotlib-friendly hex colour."""

    if not isinstance(value, str) or not value.startswith("hsl("):
        return None
    try:
        h, s, l = (float(part.strip().rstrip("%")) for part in value[4:-1].split(","))
    except ValueError:
        return None
    r, g, b = colorsys.hls_to_rgb((h % 360) / 360.0, l / 100.0, s / 100.0)
    return "#{:02x}{:02x}{:02x}".format(int(round(r * 255)), int(round(g * 255)), int(round(b * 255)))
