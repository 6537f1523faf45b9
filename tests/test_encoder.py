"""Tests for the constraint encoder."""

from __future__ import annotations

import unittest
from fractions import Fraction

from seqarrange.arrange import ConstraintEncoder, make_object, separating_cut
from seqarrange.arrange.encoder import t_name, x_name, y_name
from seqarrange.arrange.models import ConstraintKind
from seqarrange.config import SolverConfiguration
from tests.shapes_fixture import ARROW, L_SHAPE, SQUARE, make_shapes


def _values(positions, times):
    values = {}
    for i, (x, y) in positions.items():
        values[x_name(i)] = Fraction(x)
        values[y_name(i)] = Fraction(y)
    for i, t in times.items():
        values[t_name(i)] = Fraction(t)
    return values


class TestConstraintKinds(unittest.TestCase):

    def setUp(self):
        self.objects = make_shapes(zones=True)
        self.enc = ConstraintEncoder(self.objects, [0, 1, 2, 3])

    def _kinds(self, constraints):
        return {c.kind for c in constraints}

    def test_bounds_per_object(self):
        bounds = self.enc.bound_constraints()
        self.assertEqual(len(bounds), 6 * 4)
        self.assertEqual(self._kinds(bounds), {ConstraintKind.BOUND})

    def test_pairwise_builders(self):
        self.assertEqual(len(self.enc.non_overlap_constraints()), 6)
        temporal = self.enc.temporal_constraints()
        self.assertEqual(len(temporal), 6)
        self.assertTrue(all(len(c.literals) == 2 for c in temporal))
        clearance = self.enc.clearance_constraints()
        # one zone per object, both directions of each pair
        self.assertEqual(len(clearance), 12)
        self.assertTrue(all(len(c.literals) == 5 for c in clearance))

    def test_time_horizon_defaults_to_total_duration(self):
        self.assertEqual(self.enc.time_horizon, 4)
        enc = ConstraintEncoder(self.objects, [0, 1],
                                config=SolverConfiguration(time_horizon=10))
        self.assertEqual(enc.time_horizon, 10)

    def test_free_and_fixed_must_differ(self):
        with self.assertRaises(ValueError):
            ConstraintEncoder(self.objects, [0, 1], {1: (0, 0, 0)})


class TestFixedObjects(unittest.TestCase):

    def setUp(self):
        self.objects = make_shapes()
        self.fixed = {0: (Fraction(0), Fraction(0), Fraction(0)),
                      1: (Fraction(20), Fraction(0), Fraction(1))}
        self.enc = ConstraintEncoder(self.objects, [2, 3], self.fixed)

    def test_fixed_pair_not_encoded(self):
        pairs = self.enc.pairs()
        self.assertNotIn((0, 1), pairs)
        self.assertEqual(len(pairs), 5)

    def test_fixed_terms_are_constant(self):
        self.assertTrue(self.enc.x(1).is_constant)
        self.assertEqual(self.enc.x(1).constant, 20)
        self.assertFalse(self.enc.x(2).is_constant)

    def test_size_bound_includes_fixed(self):
        # object 1 spans x in [20, 32]
        fixed_clauses = [c for c in self.enc.size_bound(24) if c.pair == (1,)]
        self.assertFalse(all(c.holds({}) for c in fixed_clauses))
        fixed_clauses = [c for c in self.enc.size_bound(32) if c.pair == (1,)]
        self.assertTrue(all(c.holds({}) for c in fixed_clauses))

    def test_centered_size_bound(self):
        cfg = SolverConfiguration(plate_x_size=100, plate_y_size=100, centered=True)
        enc = ConstraintEncoder([make_object("a", SQUARE)], [0], config=cfg)
        values = _values({0: (45, 45)}, {0: 0})
        self.assertTrue(all(c.holds(values) for c in enc.size_bound(10)))
        values = _values({0: (0, 0)}, {0: 0})
        self.assertFalse(all(c.holds(values) for c in enc.size_bound(10)))


class TestCuts(unittest.TestCase):

    def test_non_overlap_cut_excludes_model(self):
        objects = [make_object("l", L_SHAPE), make_object("a", ARROW)]
        enc = ConstraintEncoder(objects, [0, 1])
        values = _values({0: (10, 10), 1: (11, 12)}, {0: 0, 1: 1})
        offset = enc.offset(0, 1, values)
        cut = separating_cut(enc.cache.pair(objects[0].contour, objects[1].contour), offset)
        self.assertIsNotNone(cut)
        constraint = enc.cut_constraint(0, 1, cut)
        self.assertIs(constraint.kind, ConstraintKind.REFINEMENT)
        self.assertFalse(constraint.holds(values))
        apart = _values({0: (10, 10), 1: (60, 60)}, {0: 0, 1: 1})
        self.assertTrue(constraint.holds(apart))

    def test_ordered_cut_has_time_escape(self):
        objects = [make_object("l", L_SHAPE), make_object("a", ARROW)]
        enc = ConstraintEncoder(objects, [0, 1])
        values = _values({0: (10, 10), 1: (11, 12)}, {0: 1, 1: 0})
        cut = separating_cut(
            enc.cache.pair(objects[0].contour, objects[1].contour),
            enc.offset(0, 1, values))
        constraint = enc.cut_constraint(0, 1, cut, ordered=True)
        self.assertFalse(constraint.holds(values))
        swapped = _values({0: (10, 10), 1: (11, 12)}, {0: 0, 1: 1})
        self.assertTrue(constraint.holds(swapped))


if __name__ == "__main__":
    unittest.main()
