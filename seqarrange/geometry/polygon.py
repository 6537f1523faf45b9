"""
Pure-Python polygon utilities over exact rationals.

Contours are sequences of (x, y) pairs.  Every function here works with
``fractions.Fraction`` coordinates (ints and floats are accepted too), so
orientation and intersection tests are exact when fed rationals.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Sequence

Number = int | float | Fraction
Vertex = tuple[Fraction, Fraction]
Contour = tuple[Vertex, ...]


# ── conversion ──────────────────────────────────────────────────────


def to_rational(value: Number | str) -> Fraction:
    """Exact rational for *value*.

    Floats go through their shortest decimal repr, so ``0.1`` becomes
    ``1/10`` rather than the binary expansion.
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, float):
        return Fraction(repr(value))
    return Fraction(value)


def rational_contour(points: Sequence[Sequence[Number]]) -> Contour:
    """Convert a list of [x, y] pairs to a tuple of rational vertices."""
    return tuple((to_rational(p[0]), to_rational(p[1])) for p in points)


# ── core primitives ─────────────────────────────────────────────────


def polygon_area(contour: Sequence[Sequence[Number]]) -> Fraction:
    """Signed area via shoelace formula (positive = CCW)."""
    n = len(contour)
    if n < 3:
        return Fraction(0)
    area = Fraction(0)
    for i in range(n):
        x0, y0 = contour[i]
        x1, y1 = contour[(i + 1) % n]
        area += to_rational(x0) * to_rational(y1) - to_rational(x1) * to_rational(y0)
    return area / 2


def ensure_ccw(contour: Contour) -> Contour:
    """Return a copy with counter-clockwise winding."""
    if polygon_area(contour) < 0:
        return tuple(reversed(contour))
    return tuple(contour)


def polygon_bounds(contour: Sequence[Sequence[Number]]) -> tuple:
    """Return (min_x, min_y, max_x, max_y)."""
    xs = [v[0] for v in contour]
    ys = [v[1] for v in contour]
    return min(xs), min(ys), max(xs), max(ys)


def cross(o: Sequence[Number], a: Sequence[Number], b: Sequence[Number]):
    """Z component of (a - o) × (b - o)."""
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


# ── segment intersection ───────────────────────────────────────────


def _on_segment(p: Vertex, q: Vertex, r: Vertex) -> bool:
    return (min(p[0], r[0]) <= q[0] <= max(p[0], r[0]) and
            min(p[1], r[1]) <= q[1] <= max(p[1], r[1]))


def segments_intersect(a1: Vertex, a2: Vertex, b1: Vertex, b2: Vertex) -> bool:
    """Check if segments (a1-a2) and (b1-b2) intersect, touching included."""
    d1 = cross(b1, b2, a1)
    d2 = cross(b1, b2, a2)
    d3 = cross(a1, a2, b1)
    d4 = cross(a1, a2, b2)
    if ((d1 > 0 and d2 < 0) or (d1 < 0 and d2 > 0)) and \
       ((d3 > 0 and d4 < 0) or (d3 < 0 and d4 > 0)):
        return True
    if d1 == 0 and _on_segment(b1, a1, b2):
        return True
    if d2 == 0 and _on_segment(b1, a2, b2):
        return True
    if d3 == 0 and _on_segment(a1, b1, a2):
        return True
    if d4 == 0 and _on_segment(a1, b2, a2):
        return True
    return False


def is_self_intersecting(contour: Contour) -> bool:
    """O(n²) edge-crossing check."""
    n = len(contour)
    for i in range(n):
        a1, a2 = contour[i], contour[(i + 1) % n]
        for j in range(i + 2, n):
            if i == 0 and j == n - 1:
                continue  # adjacent edges
            b1, b2 = contour[j], contour[(j + 1) % n]
            if segments_intersect(a1, a2, b1, b2):
                return True
    return False


# ── contour validation ──────────────────────────────────────────────


def validate_contour(contour: Sequence[Sequence[Number]]) -> list[str]:
    """
    Validate a polygon contour for use as an object footprint or zone.

    Returns a list of error strings (empty = valid).
    """
    errors: list[str] = []

    if len(contour) < 3:
        errors.append(f"Contour has only {len(contour)} vertices; need at least 3.")
        return errors

    rational = rational_contour(contour)

    for i in range(len(rational)):
        if rational[i] == rational[(i + 1) % len(rational)]:
            errors.append(f"Vertex {i} repeats the next vertex.")

    if polygon_area(rational) == 0:
        errors.append("Contour has zero area.")

    if not errors and is_self_intersecting(rational):
        errors.append("Contour has self-intersecting edges.")

    return errors
