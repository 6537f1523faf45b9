"""Tests for head geometry, clearance zones and object preparation."""

from __future__ import annotations

import math
import unittest
from fractions import Fraction

from seqarrange.arrange import clearance_zones, head_from_printer, prepare_objects
from seqarrange.arrange.geometry import to_polygon
from seqarrange.arrange.head import HeadGeometry, minkowski_sum_convex
from seqarrange.config import SolverConfiguration
from seqarrange.geometry import ensure_ccw, polygon_area, rational_contour
from tests.shapes_fixture import L_SHAPE, SQUARE


class TestHeadGeometry(unittest.TestCase):

    def test_bundled_printer(self):
        head = head_from_printer("mk3s")
        self.assertEqual((head.plate_x_size, head.plate_y_size), (250, 210))
        self.assertEqual(len(head.convex_slices), 2)
        self.assertEqual(len(head.box_slices), 2)
        self.assertEqual(head.box_levels, (18, 26))
        self.assertEqual([level for _, level, _ in head.slices()], [0, 2, 18, 26])

    def test_from_dict(self):
        head = head_from_printer({
            "plate_x_size": 100, "plate_y_size": 80,
            "convex_slices": [[[-1, -1], [1, -1], [1, 1], [-1, 1]]],
        })
        self.assertEqual(head.box_slices, ())
        self.assertEqual(len(head.convex_slices), 1)

    def test_minkowski_of_squares(self):
        a = rational_contour([(0, 0), (2, 0), (2, 2), (0, 2)])
        b = rational_contour([(-1, -1), (1, -1), (1, 1), (-1, 1)])
        self.assertEqual(polygon_area(minkowski_sum_convex(a, b)), 16)


class TestClearanceZones(unittest.TestCase):

    def setUp(self):
        self.head = head_from_printer("mk3s")

    def test_convex_zones_cover_the_object(self):
        contour = ensure_ccw(rational_contour(L_SHAPE))
        zones = clearance_zones(contour, self.head)
        self.assertEqual(len(zones), 4)
        for zone in zones:
            self.assertGreater(polygon_area(zone), 0)
        body = to_polygon(contour)
        for zone in zones[:len(self.head.convex_slices)]:
            self.assertTrue(to_polygon(zone).covers(body))

    def test_nozzle_zone_of_concave_object_is_convex(self):
        contour = ensure_ccw(rational_contour(L_SHAPE))
        zone = clearance_zones(contour, self.head)[0]
        # hull of the L grown by 1 on every side
        self.assertEqual(polygon_area(zone), polygon_area(
            rational_contour([(-1, -1), (13, -1), (13, 5), (5, 13), (-1, 13)])))

    def test_box_slice_zone(self):
        head = HeadGeometry(100, 100, box_slices=(
            rational_contour([(-2, 0), (2, 0), (2, 30), (-2, 30)]),))
        zone = clearance_zones(ensure_ccw(rational_contour(SQUARE)), head)[0]
        self.assertEqual(set(zone), {(-2, 0), (12, 0), (12, 40), (-2, 40)})


class TestSliceLevels(unittest.TestCase):

    def setUp(self):
        self.head = head_from_printer("mk3s")
        self.contour = ensure_ccw(rational_contour(SQUARE))

    def test_short_object_has_no_gantry_zone(self):
        zones = clearance_zones(self.contour, self.head, height=Fraction(10))
        self.assertEqual(len(zones), 2)
        widths = [max(x for x, _ in z) - min(x for x, _ in z) for z in zones]
        self.assertLess(max(widths), 100)

    def test_tall_object_reaches_every_level(self):
        zones = clearance_zones(self.contour, self.head, height=Fraction(40))
        self.assertEqual(len(zones), 4)

    def test_height_between_hose_and_gantry(self):
        zones = clearance_zones(self.contour, self.head, height=Fraction(20))
        self.assertEqual(len(zones), 3)

    def test_level_contours_replace_the_footprint(self):
        top = ensure_ccw(rational_contour([(2, 2), (4, 2), (4, 4), (2, 4)]))
        zones = clearance_zones(
            self.contour, self.head, level_contours={Fraction(18): top, Fraction(26): ()})
        self.assertEqual(len(zones), 3)
        self.assertEqual(set(zones[2]), {(-7, 6), (13, 6), (13, 64), (-7, 64)})

    def test_prepare_objects_reads_levels(self):
        objects = prepare_objects([
            {"id": "flat", "contour": SQUARE, "height": 1},
            {"id": "capped", "contour": SQUARE, "level_contours": {"26": []}},
        ], self.head)
        self.assertEqual(len(objects[0].clearance_zones), 1)
        self.assertEqual(len(objects[1].clearance_zones), 3)

    def test_non_positive_height_rejected(self):
        with self.assertRaises(ValueError):
            prepare_objects([{"id": 1, "contour": SQUARE, "height": 0}], self.head)


class TestPrepareObjects(unittest.TestCase):

    def test_zones_from_head(self):
        objects = prepare_objects(
            [{"id": "sq", "contour": SQUARE, "duration": 3}], head_from_printer("mk3s"))
        self.assertEqual(objects[0].duration, 3)
        self.assertEqual(len(objects[0].clearance_zones), 4)

    def test_explicit_zones_win(self):
        zone = [(0, 0), (20, 0), (20, 20), (0, 20)]
        objects = prepare_objects(
            [{"id": "sq", "contour": SQUARE, "clearance_zones": [zone]}],
            head_from_printer("mk3s"))
        self.assertEqual(len(objects[0].clearance_zones), 1)

    def test_no_head_no_zones(self):
        objects = prepare_objects([{"id": 1, "contour": SQUARE}])
        self.assertEqual(objects[0].clearance_zones, ())

    def test_decimation(self):
        circle = [(round(20 * math.cos(2 * math.pi * k / 64), 6),
                   round(20 * math.sin(2 * math.pi * k / 64), 6)) for k in range(64)]
        config = SolverConfiguration(decimation_precision="low")
        obj = prepare_objects([{"id": "c", "contour": circle}], None, config)[0]
        self.assertLess(len(obj.contour), 64)
        self.assertTrue(to_polygon(obj.contour).covers(to_polygon(circle)))


if __name__ == "__main__":
    unittest.main()
