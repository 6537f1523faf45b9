"""Geometry adapter — shapely-backed polygon helpers for the arrangement.

Float-level operations live here: overlap tests on placed polygons, box
extents, the inscribed *core box* used by the weak non-overlap
encoding, and contour decimation.  Exact offset-space reasoning (no-fit
pieces, separating cuts) is in ``nfp``.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Sequence

from shapely.affinity import translate as shapely_translate
from shapely.geometry import Polygon, box as shapely_box
from shapely.ops import polylabel

from seqarrange.geometry.polygon import (
    Contour, Number, ensure_ccw, polygon_bounds, rational_contour, to_rational,
)


CORE_BOX_SEARCH_STEPS = 24   # bisection steps for the core-box scale
CORE_BOX_MARGIN = 1e-6       # relative inset keeping the core box strictly inside


@dataclass(frozen=True)
class Box:
    """Axis-aligned box in an object's local frame (exact rationals)."""

    min_x: Fraction
    min_y: Fraction
    max_x: Fraction
    max_y: Fraction

    @property
    def width(self) -> Fraction:
        return self.max_x - self.min_x

    @property
    def height(self) -> Fraction:
        return self.max_y - self.min_y

    @property
    def area(self) -> Fraction:
        return self.width * self.height


def to_polygon(
    contour: Sequence[Sequence[Number]] | Polygon,
    x: Number = 0, y: Number = 0,
) -> Polygon:
    """Shapely polygon for *contour* translated by (x, y)."""
    if isinstance(contour, Polygon):
        poly = contour
    else:
        poly = Polygon([(float(px), float(py)) for px, py in contour])
    if x or y:
        poly = shapely_translate(poly, xoff=float(x), yoff=float(y))
    return poly


def overlaps(
    poly_a: Sequence[Sequence[Number]] | Polygon,
    poly_b: Sequence[Sequence[Number]] | Polygon,
    tolerance: float = 1e-6,
) -> bool:
    """True if the interiors of two placed polygons intersect.

    Works for arbitrary simple (non-convex) polygons.  Intersections with
    area at or below *tolerance* (touching edges, float noise) are
    ignored.
    """
    a = to_polygon(poly_a)
    b = to_polygon(poly_b)
    if not a.intersects(b):
        return False
    return a.intersection(b).area > tolerance


def bounding_box(contour: Sequence[Sequence[Number]]) -> Box:
    """Axis-aligned bounding box, exact for rational contours."""
    min_x, min_y, max_x, max_y = polygon_bounds(contour)
    return Box(to_rational(min_x), to_rational(min_y),
               to_rational(max_x), to_rational(max_y))


def _scaled_box(center: tuple[Fraction, Fraction], bbox: Box, s: Fraction) -> Box:
    cx, cy = center
    return Box(
        cx - s * (cx - bbox.min_x),
        cy - s * (cy - bbox.min_y),
        cx + s * (bbox.max_x - cx),
        cy + s * (bbox.max_y - cy),
    )


def _box_polygon(b: Box) -> Polygon:
    return shapely_box(float(b.min_x), float(b.min_y), float(b.max_x), float(b.max_y))


def core_box(contour: Contour) -> Box | None:
    """Large axis-aligned box inscribed in *contour*.

    The bounding box is shrunk towards the pole of inaccessibility until
    the contour covers it.  Two boxes taken this way overlap only if the
    contours overlap, which makes their separation a necessary condition
    for contour non-overlap.  Returns ``None`` for contours too thin to
    hold a box.
    """
    poly = to_polygon(contour)
    bbox = bounding_box(contour)
    label = polylabel(poly, tolerance=max(float(bbox.width), float(bbox.height)) / 100)
    center = (
        Fraction(label.x).limit_denominator(1 << 20),
        Fraction(label.y).limit_denominator(1 << 20),
    )

    lo, hi = Fraction(0), Fraction(1)
    if poly.covers(_box_polygon(bbox)):
        lo = Fraction(1)
    else:
        for _ in range(CORE_BOX_SEARCH_STEPS):
            mid = (lo + hi) / 2
            if poly.covers(_box_polygon(_scaled_box(center, bbox, mid))):
                lo = mid
            else:
                hi = mid

    s = lo * (1 - Fraction(CORE_BOX_MARGIN))
    if lo == 1:
        s = Fraction(1)
    result = _scaled_box(center, bbox, s)
    if result.width <= 0 or result.height <= 0:
        return None
    return result


def decimate_contour(contour: Contour, tolerance: float) -> Contour:
    """Simplify *contour* while keeping it a cover of the original.

    The contour is grown by *tolerance* and then simplified with half
    that tolerance, so the simplification error stays outside the
    original polygon.  Falls back to the convex hull if numerical
    trouble breaks the cover.
    """
    if tolerance <= 0:
        return contour
    poly = to_polygon(contour)
    grown = poly.buffer(tolerance, join_style="mitre")
    simplified = grown.simplify(tolerance / 2, preserve_topology=True)
    if not isinstance(simplified, Polygon) or not simplified.covers(poly):
        simplified = poly.convex_hull
    coords = list(simplified.exterior.coords)[:-1]
    if len(coords) >= len(contour):
        return contour
    return ensure_ccw(rational_contour(coords))
