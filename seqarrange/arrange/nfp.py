"""Exact no-fit geometry over rationals.

Two contours A (placed at p_a) and B (placed at p_b) overlap (their
interiors intersect) exactly when the relative offset ``d = p_b - p_a``
lies in the interior of the no-fit region ``A ⊕ (−B)``.  The region is
kept as a union of convex *pieces*, one per pair of triangles
(t_a, t_b) of the two contours: ``hull(t_a ⊕ (−t_b))``.  An open set
inside ``int(A) ∩ int(B)`` always contains a point off every triangle
edge, so overlap ⇔ d is strictly inside some piece.

A piece containing the current offset is the corrective *separating
cut*: "d lies outside this piece" is a disjunction of half-planes (one
per piece edge), linear in the positions, and never excludes a valid
placement.  Each pair has finitely many pieces, which bounds the number
of cuts per pair.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction

from seqarrange.geometry.polygon import Contour, Vertex, cross

from .geometry import bounding_box, core_box
from .models import GeometryDegenerate


Triangle = tuple[Vertex, Vertex, Vertex]


# ── Triangulation ──────────────────────────────────────────────────


def _in_triangle(p: Vertex, a: Vertex, b: Vertex, c: Vertex) -> bool:
    """Closed point-in-triangle test for a CCW triangle."""
    return cross(a, b, p) >= 0 and cross(b, c, p) >= 0 and cross(c, a, p) >= 0


def triangulate(contour: Contour) -> list[Triangle]:
    """Ear-clipping triangulation of a simple CCW contour.

    Collinear vertices are dropped on the way; they add no area.

    Raises
    ------
    GeometryDegenerate
        If no ear can be found (self-intersecting or zero-area input).
    """
    pts = list(contour)
    idx = list(range(len(pts)))
    triangles: list[Triangle] = []

    while len(idx) > 3:
        n = len(idx)
        clipped = False
        for k in range(n):
            ia, ib, ic = idx[k - 1], idx[k], idx[(k + 1) % n]
            a, b, c = pts[ia], pts[ib], pts[ic]
            turn = cross(a, b, c)
            if turn == 0:
                del idx[k]
                clipped = True
                break
            if turn < 0:
                continue  # reflex
            if any(
                _in_triangle(pts[m], a, b, c)
                for m in idx
                if m not in (ia, ib, ic) and pts[m] not in (a, b, c)
            ):
                continue
            triangles.append((a, b, c))
            del idx[k]
            clipped = True
            break
        if not clipped:
            raise GeometryDegenerate(None, "contour cannot be triangulated")

    a, b, c = (pts[i] for i in idx)
    if cross(a, b, c) > 0:
        triangles.append((a, b, c))
    elif cross(a, b, c) < 0:
        raise GeometryDegenerate(None, "contour is not counter-clockwise")
    if not triangles:
        raise GeometryDegenerate(None, "contour has zero area")
    return triangles


# ── Convex hull ────────────────────────────────────────────────────


def convex_hull(points) -> tuple[Vertex, ...]:
    """Monotone-chain convex hull, CCW, collinear points removed."""
    pts = sorted(set(points))
    if len(pts) <= 2:
        return tuple(pts)

    lower: list[Vertex] = []
    for p in pts:
        while len(lower) >= 2 and cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)
    upper: list[Vertex] = []
    for p in reversed(pts):
        while len(upper) >= 2 and cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)
    return tuple(lower[:-1] + upper[:-1])


def strictly_inside_convex(point: Vertex, hull: tuple[Vertex, ...]) -> bool:
    """True if *point* lies in the open interior of a CCW convex polygon."""
    n = len(hull)
    if n < 3:
        return False
    return all(cross(hull[k], hull[(k + 1) % n], point) > 0 for k in range(n))


# ── Pair geometry ──────────────────────────────────────────────────


@dataclass(frozen=True)
class SeparationCut:
    """A convex no-fit piece the relative offset must stay out of.

    ``lines`` are the piece's directed edges; the offset is separated
    when it lies on or right of at least one of them.
    """

    piece: tuple[Vertex, ...]

    @property
    def lines(self) -> list[tuple[Vertex, Vertex]]:
        n = len(self.piece)
        return [(self.piece[k], self.piece[(k + 1) % n]) for k in range(n)]

    def separates(self, offset: Vertex) -> bool:
        return not strictly_inside_convex(offset, self.piece)


def no_fit_pieces(
    a: Contour,
    b: Contour,
    tri_a: list[Triangle] | None = None,
    tri_b: list[Triangle] | None = None,
) -> list[tuple[Vertex, ...]]:
    """Convex pieces ``hull(t_a ⊕ (−t_b))`` whose union is the no-fit region."""
    tri_a = tri_a if tri_a is not None else triangulate(a)
    tri_b = tri_b if tri_b is not None else triangulate(b)
    pieces = []
    for ta in tri_a:
        for tb in tri_b:
            hull = convex_hull(
                (pa[0] - pb[0], pa[1] - pb[1]) for pa in ta for pb in tb
            )
            if len(hull) >= 3:
                pieces.append(hull)
    return pieces


@dataclass
class PairGeometry:
    """No-fit pieces of contour *b* relative to contour *a*."""

    a: Contour
    b: Contour
    pieces: list[tuple[Vertex, ...]] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        a: Contour,
        b: Contour,
        tri_a: list[Triangle] | None = None,
        tri_b: list[Triangle] | None = None,
    ) -> PairGeometry:
        return cls(a=a, b=b, pieces=no_fit_pieces(a, b, tri_a, tri_b))

    @property
    def extent(self) -> tuple[Fraction, Fraction, Fraction, Fraction]:
        """Bounding box of the no-fit region (offset space)."""
        ax = [v[0] for v in self.a]
        ay = [v[1] for v in self.a]
        bx = [v[0] for v in self.b]
        by = [v[1] for v in self.b]
        return (min(ax) - max(bx), min(ay) - max(by),
                max(ax) - min(bx), max(ay) - min(by))

    def piece_at(self, offset: Vertex) -> tuple[Vertex, ...] | None:
        """First piece whose interior contains *offset*, if any."""
        x0, y0, x1, y1 = self.extent
        if not (x0 < offset[0] < x1 and y0 < offset[1] < y1):
            return None
        for piece in self.pieces:
            if strictly_inside_convex(offset, piece):
                return piece
        return None

    def overlaps_at(self, offset: Vertex) -> bool:
        return self.piece_at(offset) is not None


def separating_cut(pair: PairGeometry, offset: Vertex) -> SeparationCut | None:
    """Corrective cut for two contours overlapping at *offset*.

    Returns ``None`` when the contours do not overlap at that offset.
    """
    piece = pair.piece_at(offset)
    if piece is None:
        return None
    return SeparationCut(piece)


def separating_lines(pair: PairGeometry, offset: Vertex) -> list[tuple[Vertex, Vertex]]:
    """Lines of the separating cut at *offset* (empty when separated)."""
    cut = separating_cut(pair, offset)
    return cut.lines if cut is not None else []


class GeometryCache:
    """Per-run memo of triangulations and pair geometries.

    Keyed by the contours themselves, so duplicated objects share work.
    Owned by one arrangement run; never shared between runs.
    """

    def __init__(self) -> None:
        self._triangles: dict[Contour, list[Triangle]] = {}
        self._pairs: dict[tuple[Contour, Contour], PairGeometry] = {}
        self._boxes: dict[tuple[Contour, str], object] = {}

    def weak_box(self, contour: Contour, encoding: str):
        """Box used by the weak non-overlap encoding (``core`` or ``bounding``)."""
        key = (contour, encoding)
        if key not in self._boxes:
            if encoding == "bounding":
                self._boxes[key] = bounding_box(contour)
            else:
                self._boxes[key] = core_box(contour)
        return self._boxes[key]

    def triangles(self, contour: Contour) -> list[Triangle]:
        if contour not in self._triangles:
            self._triangles[contour] = triangulate(contour)
        return self._triangles[contour]

    def pair(self, a: Contour, b: Contour) -> PairGeometry:
        key = (a, b)
        if key not in self._pairs:
            self._pairs[key] = PairGeometry.build(
                a, b, self.triangles(a), self.triangles(b))
        return self._pairs[key]
