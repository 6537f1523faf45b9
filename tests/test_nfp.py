"""Tests for exact no-fit pieces and separating cuts.

The exact overlap test is compared against shapely on placements whose
answer is unambiguous (clear overlap, clear gap, edge contact).
"""

from __future__ import annotations

import unittest
from fractions import Fraction

from seqarrange.arrange import GeometryDegenerate, PairGeometry, overlaps, separating_cut
from seqarrange.arrange.geometry import to_polygon
from seqarrange.arrange.nfp import (
    GeometryCache, convex_hull, no_fit_pieces, separating_lines, strictly_inside_convex,
    triangulate,
)
from seqarrange.geometry import ensure_ccw, polygon_area, rational_contour
from tests.shapes_fixture import ARROW, DIAMOND, L_SHAPE, SHAPES, SQUARE


def _c(points):
    return ensure_ccw(rational_contour(points))


class TestTriangulate(unittest.TestCase):

    def test_areas_add_up(self):
        for shape in SHAPES:
            contour = _c(shape)
            tris = triangulate(contour)
            self.assertEqual(sum(polygon_area(t) for t in tris), polygon_area(contour))
            for t in tris:
                self.assertGreater(polygon_area(t), 0)

    def test_collinear_vertex(self):
        contour = _c([(0, 0), (5, 0), (10, 0), (10, 10), (0, 10)])
        tris = triangulate(contour)
        self.assertEqual(sum(polygon_area(t) for t in tris), 100)
        self.assertTrue(all(polygon_area(t) > 0 for t in tris))

    def test_degenerate_raises(self):
        with self.assertRaises(GeometryDegenerate):
            triangulate(_c([(0, 0), (1, 0), (2, 0)]))


class TestConvexHelpers(unittest.TestCase):

    def test_hull_drops_interior_and_collinear(self):
        hull = convex_hull([(0, 0), (2, 0), (4, 0), (4, 4), (0, 4), (2, 2)])
        self.assertEqual(set(hull), {(0, 0), (4, 0), (4, 4), (0, 4)})
        self.assertGreater(polygon_area(hull), 0)

    def test_strict_interior(self):
        hull = convex_hull([(0, 0), (4, 0), (4, 4), (0, 4)])
        self.assertTrue(strictly_inside_convex((2, 2), hull))
        self.assertFalse(strictly_inside_convex((4, 2), hull))
        self.assertFalse(strictly_inside_convex((5, 2), hull))


class TestPairGeometry(unittest.TestCase):

    def _agrees_with_shapely(self, a, b, offset):
        pair = PairGeometry.build(_c(a), _c(b))
        exact = pair.overlaps_at(offset)
        placed = overlaps(to_polygon(a), to_polygon(b, *offset))
        self.assertEqual(exact, placed, f"offset {offset}")
        return exact

    def test_clear_overlap(self):
        self.assertTrue(self._agrees_with_shapely(SQUARE, SQUARE, (5, 5)))
        self.assertTrue(self._agrees_with_shapely(L_SHAPE, DIAMOND, (-3, -3)))

    def test_clear_gap(self):
        self.assertFalse(self._agrees_with_shapely(SQUARE, SQUARE, (11, 0)))
        self.assertFalse(self._agrees_with_shapely(L_SHAPE, ARROW, (30, 30)))

    def test_edge_contact_is_not_overlap(self):
        self.assertFalse(self._agrees_with_shapely(SQUARE, SQUARE, (10, 0)))
        self.assertFalse(self._agrees_with_shapely(SQUARE, SQUARE, (10, 10)))

    def test_object_nests_in_concave_notch(self):
        # A 6x6 square fits in the notch of the L without touching its interior.
        small = [(0, 0), (6, 0), (6, 6), (0, 6)]
        self.assertFalse(self._agrees_with_shapely(L_SHAPE, small, (5, 5)))
        self.assertTrue(self._agrees_with_shapely(L_SHAPE, small, (3, 3)))

    def test_pieces_cover_square_pair(self):
        pieces = no_fit_pieces(_c(SQUARE), _c(SQUARE))
        self.assertEqual(len(pieces), 4)
        total = to_polygon(pieces[0])
        for piece in pieces[1:]:
            total = total.union(to_polygon(piece))
        self.assertAlmostEqual(total.area, 400.0)

    def test_extent_matches_bounds(self):
        pair = PairGeometry.build(_c(SQUARE), _c(L_SHAPE))
        self.assertEqual(pair.extent, (-12, -12, 10, 10))


class TestSeparatingCut(unittest.TestCase):

    def test_none_when_separated(self):
        pair = PairGeometry.build(_c(SQUARE), _c(SQUARE))
        self.assertIsNone(separating_cut(pair, (20, 0)))
        self.assertEqual(separating_lines(pair, (20, 0)), [])

    def test_cut_excludes_current_offset(self):
        pair = PairGeometry.build(_c(L_SHAPE), _c(ARROW))
        offset = (Fraction(1), Fraction(2))
        cut = separating_cut(pair, offset)
        self.assertIsNotNone(cut)
        self.assertFalse(cut.separates(offset))
        self.assertTrue(cut.separates((Fraction(40), Fraction(40))))
        self.assertGreaterEqual(len(cut.lines), 3)

    def test_cut_keeps_every_non_overlapping_offset(self):
        pair = PairGeometry.build(_c(L_SHAPE), _c(DIAMOND))
        cut = separating_cut(pair, (Fraction(2), Fraction(2)))
        for dx in range(-14, 15, 2):
            for dy in range(-14, 15, 2):
                if not pair.overlaps_at((dx, dy)):
                    self.assertTrue(cut.separates((dx, dy)), (dx, dy))


class TestGeometryCache(unittest.TestCase):

    def test_pairs_are_memoised(self):
        cache = GeometryCache()
        a, b = _c(SQUARE), _c(ARROW)
        self.assertIs(cache.pair(a, b), cache.pair(a, b))
        self.assertIs(cache.triangles(a), cache.triangles(a))

    def test_weak_boxes(self):
        cache = GeometryCache()
        diamond = _c(DIAMOND)
        bbox = cache.weak_box(diamond, "bounding")
        core = cache.weak_box(diamond, "core")
        self.assertEqual((bbox.width, bbox.height), (12, 12))
        self.assertLess(core.area, bbox.area)


if __name__ == "__main__":
    unittest.main()
