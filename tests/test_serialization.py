"""Tests for JSON conversion of objects and schedules."""

from __future__ import annotations

import json
import unittest
from fractions import Fraction

from seqarrange.arrange import (
    ArrangementStatus, PlacedObject, Plate, ScheduleResult, Solution, make_object,
    object_to_dict, parse_object, parse_objects, parse_schedule, schedule_to_dict,
    solution_to_dict,
)
from seqarrange.arrange.models import StatusKind, StatusReason
from tests.shapes_fixture import L_SHAPE, SQUARE


class TestObjects(unittest.TestCase):

    def test_object_dict_is_json_safe(self):
        obj = make_object("l", L_SHAPE, [[(0, 0), (20, 0), (20, 20), (0, 20)]], 2.5)
        data = json.loads(json.dumps(object_to_dict(obj)))
        self.assertEqual(data["duration"], 2.5)
        self.assertEqual(len(data["clearance_zones"]), 1)
        self.assertEqual(parse_object(data), obj)

    def test_zones_omitted_when_empty(self):
        self.assertNotIn("clearance_zones", object_to_dict(make_object(1, SQUARE)))

    def test_parse_objects_accepts_wrapper(self):
        raw = [{"id": 1, "contour": SQUARE}]
        self.assertEqual(parse_objects(raw), parse_objects({"objects": raw}))


class TestSchedule(unittest.TestCase):

    def test_exact_values_survive(self):
        result = ScheduleResult(
            plates=[Plate([PlacedObject("a", Fraction(1, 3), Fraction(2), Fraction(0))], size=24)],
            remaining=["b"],
            status=ArrangementStatus.indeterminate(StatusReason.PARTIAL_PLACEMENT),
        )
        data = json.loads(json.dumps(schedule_to_dict(result)))
        self.assertAlmostEqual(data["plates"][0]["placements"][0]["x"], 1 / 3)
        back = parse_schedule(data)
        self.assertEqual(back.plates[0].placements[0].x, Fraction(1, 3))
        self.assertEqual(back.remaining, ["b"])
        self.assertIs(back.status.kind, StatusKind.INDETERMINATE)
        self.assertIs(back.status.reason, StatusReason.PARTIAL_PLACEMENT)

    def test_floats_without_exact(self):
        data = {
            "status": {"kind": "valid", "size": 20, "reason": None},
            "plates": [{"size": 20, "placements": [{"id": 1, "x": 0.5, "y": 2, "t": 0}]}],
        }
        back = parse_schedule(data)
        self.assertEqual(back.plates[0].placements[0].x, Fraction(1, 2))
        self.assertEqual(back.status.size, 20)

    def test_solution_uses_ids(self):
        objects = [make_object("a", SQUARE), make_object("b", SQUARE)]
        solution = Solution(
            positions={0: (Fraction(0), Fraction(0))}, times={0: Fraction(0)},
            decided=[0], remaining=[1], size=12,
            status=ArrangementStatus.valid(12),
        )
        data = solution_to_dict(solution, objects)
        self.assertEqual(data["remaining"], ["b"])
        self.assertEqual(data["placements"][0]["id"], "a")
        self.assertEqual(data["status"]["kind"], "valid")


if __name__ == "__main__":
    unittest.main()
