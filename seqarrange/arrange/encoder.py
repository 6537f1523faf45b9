"""Constraint encoder — objects and configuration to symbolic constraints.

Every constraint kind has exactly one builder here, parameterised by the
pair (or single object) it concerns.  Objects already decided on the
plate enter as constant terms, so the same builders serve free/free and
free/fixed pairs; pairs of two fixed objects are never emitted.
"""

from __future__ import annotations

from fractions import Fraction
from itertools import combinations
from typing import Sequence

from seqarrange.config import DEFAULT_CONFIG, SolverConfiguration
from seqarrange.geometry.polygon import Vertex

from .geometry import Box, bounding_box
from .models import (
    ArrangementObject, Constraint, ConstraintKind, LinearTerm, Literal, leq,
)
from .nfp import GeometryCache, SeparationCut


Placement = tuple[Fraction, Fraction, Fraction]   # (x, y, t) of a fixed object


def x_name(i: int) -> str:
    return f"x_pos-{i}"


def y_name(i: int) -> str:
    return f"y_pos-{i}"


def t_name(i: int) -> str:
    return f"t_time-{i}"


class ConstraintEncoder:
    """Builds the constraints of one arrangement attempt.

    Parameters
    ----------
    objects : sequence of ArrangementObject
        The plate's object list; indices below refer to it.
    free : sequence of int
        Indices whose position and start time the solver decides.
    fixed : dict
        Index → (x, y, t) of objects already decided on this plate.
    """

    def __init__(
        self,
        objects: Sequence[ArrangementObject],
        free: Sequence[int],
        fixed: dict[int, Placement] | None = None,
        config: SolverConfiguration = DEFAULT_CONFIG,
        cache: GeometryCache | None = None,
    ) -> None:
        self.objects = list(objects)
        self.free = sorted(free)
        self.fixed = dict(fixed or {})
        overlap = set(self.free) & set(self.fixed)
        if overlap:
            raise ValueError(f"Indices both free and fixed: {sorted(overlap)}")
        self.config = config
        self.cache = cache if cache is not None else GeometryCache()
        self.active = sorted(set(self.free) | set(self.fixed))

    # ── Terms ──────────────────────────────────────────────────────

    def declare(self, session) -> None:
        for i in self.free:
            session.declare_real(x_name(i))
            session.declare_real(y_name(i))
            session.declare_real(t_name(i))

    def x(self, i: int) -> LinearTerm:
        if i in self.fixed:
            return LinearTerm.const(self.fixed[i][0])
        return LinearTerm.variable(x_name(i))

    def y(self, i: int) -> LinearTerm:
        if i in self.fixed:
            return LinearTerm.const(self.fixed[i][1])
        return LinearTerm.variable(y_name(i))

    def t(self, i: int) -> LinearTerm:
        if i in self.fixed:
            return LinearTerm.const(self.fixed[i][2])
        return LinearTerm.variable(t_name(i))

    def position(self, i: int, values: dict[str, Fraction]) -> Vertex:
        return self.x(i).evaluate(values), self.y(i).evaluate(values)

    def time(self, i: int, values: dict[str, Fraction]) -> Fraction:
        return self.t(i).evaluate(values)

    def offset(self, i: int, j: int, values: dict[str, Fraction]) -> Vertex:
        """Exact ``p_j - p_i`` under *values*."""
        xi, yi = self.position(i, values)
        xj, yj = self.position(j, values)
        return xj - xi, yj - yi

    @property
    def time_horizon(self) -> Fraction:
        if self.config.time_horizon is not None:
            return Fraction(self.config.time_horizon)
        return sum((self.objects[i].duration for i in self.active), Fraction(0))

    def pairs(self) -> list[tuple[int, int]]:
        """Active pairs with at least one free member."""
        return [
            (i, j) for i, j in combinations(self.active, 2)
            if i not in self.fixed or j not in self.fixed
        ]

    # ── Builders ───────────────────────────────────────────────────

    def _box_separation(
        self, kind: ConstraintKind, i: int, box_i: Box, j: int, box_j: Box,
    ) -> Constraint:
        xi, yi, xj, yj = self.x(i), self.y(i), self.x(j), self.y(j)
        return Constraint(kind, (i, j), (
            leq(xi + box_i.max_x, xj + box_j.min_x),
            leq(xj + box_j.max_x, xi + box_i.min_x),
            leq(yi + box_i.max_y, yj + box_j.min_y),
            leq(yj + box_j.max_y, yi + box_i.min_y),
        ))

    def bound_constraints(self) -> list[Constraint]:
        """Plate containment and time window of every free object."""
        cfg = self.config
        horizon = self.time_horizon
        out = []
        for i in self.free:
            box = bounding_box(self.objects[i].contour)
            x, y, t = self.x(i), self.y(i), self.t(i)
            for lit in (
                leq(0, x + box.min_x),
                leq(x + box.max_x, cfg.plate_x_size),
                leq(0, y + box.min_y),
                leq(y + box.max_y, cfg.plate_y_size),
                leq(0, t),
                leq(t + self.objects[i].duration, horizon),
            ):
                out.append(Constraint(ConstraintKind.BOUND, (i,), (lit,)))
        return out

    def non_overlap_constraints(self) -> list[Constraint]:
        """Weak 4-way box disjunction for every pair."""
        encoding = self.config.non_overlap_encoding
        out = []
        for i, j in self.pairs():
            box_i = self.cache.weak_box(self.objects[i].contour, encoding)
            box_j = self.cache.weak_box(self.objects[j].contour, encoding)
            if box_i is None or box_j is None:
                continue
            out.append(self._box_separation(
                ConstraintKind.NON_OVERLAP, i, box_i, j, box_j))
        return out

    def temporal_constraints(self) -> list[Constraint]:
        """One object at a time: processing windows are disjoint."""
        out = []
        for i, j in self.pairs():
            ti, tj = self.t(i), self.t(j)
            out.append(Constraint(ConstraintKind.TEMPORAL, (i, j), (
                leq(ti + self.objects[i].duration, tj),
                leq(tj + self.objects[j].duration, ti),
            )))
        return out

    def clearance_constraints(self) -> list[Constraint]:
        """Zones of a later object stay clear of earlier footprints (weak)."""
        encoding = self.config.non_overlap_encoding
        out = []
        for a, b in self.pairs():
            for i, j in ((a, b), (b, a)):
                obj_i, obj_j = self.objects[i], self.objects[j]
                box_j = self.cache.weak_box(obj_j.contour, encoding)
                if box_j is None:
                    continue
                for zone in obj_i.clearance_zones:
                    box_z = self.cache.weak_box(zone, encoding)
                    if box_z is None:
                        continue
                    sep = self._box_separation(
                        ConstraintKind.CLEARANCE, i, box_z, j, box_j)
                    out.append(Constraint(
                        ConstraintKind.CLEARANCE, (i, j),
                        (leq(self.t(i), self.t(j)),) + sep.literals,
                    ))
        return out

    def base_constraints(self) -> list[Constraint]:
        return (
            self.bound_constraints()
            + self.non_overlap_constraints()
            + self.temporal_constraints()
            + self.clearance_constraints()
        )

    def size_bound(self, size: int) -> list[Constraint]:
        """Keep every active object inside the square search box of *size*.

        Fixed objects are included so a plate never reports a box smaller
        than what is already on it.
        """
        cfg = self.config
        if cfg.centered:
            lo_x = Fraction(cfg.plate_x_size - size, 2)
            lo_y = Fraction(cfg.plate_y_size - size, 2)
        else:
            lo_x = lo_y = Fraction(0)
        hi_x, hi_y = lo_x + size, lo_y + size
        out = []
        for i in self.active:
            box = bounding_box(self.objects[i].contour)
            x, y = self.x(i), self.y(i)
            for lit in (
                leq(lo_x, x + box.min_x),
                leq(x + box.max_x, hi_x),
                leq(lo_y, y + box.min_y),
                leq(y + box.max_y, hi_y),
            ):
                out.append(Constraint(ConstraintKind.BOUND, (i,), (lit,)))
        return out

    def cut_constraint(
        self, i: int, j: int, cut: SeparationCut, ordered: bool = False,
    ) -> Constraint:
        """Corrective constraint keeping ``p_j - p_i`` out of a no-fit piece.

        With *ordered* the cut only applies while j is processed before i
        (clearance), so ``t_i <= t_j`` is added as an escape.
        """
        dx = self.x(j) - self.x(i)
        dy = self.y(j) - self.y(i)
        literals: list[Literal] = []
        if ordered:
            literals.append(leq(self.t(i), self.t(j)))
        for (x0, y0), (x1, y1) in cut.lines:
            # offset on or right of the directed edge
            literals.append(Literal((dy - y0) * (x1 - x0) - (dx - x0) * (y1 - y0)))
        return Constraint(ConstraintKind.REFINEMENT, (i, j), tuple(literals))
