"""Arrangement data model: objects, constraints, solutions, statuses, errors."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Sequence

from seqarrange.geometry.polygon import (
    Contour, Number, ensure_ccw, polygon_bounds, rational_contour,
    to_rational, validate_contour,
)


# ── Input objects ──────────────────────────────────────────────────


@dataclass(frozen=True)
class ArrangementObject:
    """One rigid object to place and process.

    ``contour`` and every clearance zone share the object's local frame;
    the solver decides the translation applied to that frame.
    """

    object_id: int | str
    contour: Contour
    clearance_zones: tuple[Contour, ...] = ()
    duration: Fraction = Fraction(1)

    @property
    def bounds(self) -> tuple[Fraction, Fraction, Fraction, Fraction]:
        return polygon_bounds(self.contour)


def make_object(
    object_id: int | str,
    contour: Sequence[Sequence[Number]],
    clearance_zones: Sequence[Sequence[Sequence[Number]]] = (),
    duration: Number = 1,
) -> ArrangementObject:
    """Validate and normalise raw input into an ``ArrangementObject``.

    Coordinates become exact rationals and every polygon is made CCW.

    Raises
    ------
    GeometryDegenerate
        If the contour or one of the zones is not a simple polygon.
    ValueError
        If the duration is not positive.
    """
    errors = validate_contour(contour)
    if errors:
        raise GeometryDegenerate(object_id, "; ".join(errors))
    zones = []
    for k, zone in enumerate(clearance_zones):
        zone_errors = validate_contour(zone)
        if zone_errors:
            raise GeometryDegenerate(
                object_id, f"clearance zone {k}: " + "; ".join(zone_errors))
        zones.append(ensure_ccw(rational_contour(zone)))
    dur = to_rational(duration)
    if dur <= 0:
        raise ValueError(f"Object {object_id!r}: duration must be positive, got {duration}")
    return ArrangementObject(
        object_id=object_id,
        contour=ensure_ccw(rational_contour(contour)),
        clearance_zones=tuple(zones),
        duration=dur,
    )


# ── Symbolic constraints ───────────────────────────────────────────


@dataclass(frozen=True)
class LinearTerm:
    """Sparse linear expression ``sum(coef * var) + constant``.

    Variables are referred to by name; the solver session owns the
    actual symbols.  A term without variables is a plain constant,
    which is how fixed objects enter the encoding.
    """

    coefficients: tuple[tuple[str, Fraction], ...] = ()
    constant: Fraction = Fraction(0)

    @classmethod
    def variable(cls, name: str) -> LinearTerm:
        return cls(((name, Fraction(1)),))

    @classmethod
    def const(cls, value: Number) -> LinearTerm:
        return cls((), to_rational(value))

    @property
    def is_constant(self) -> bool:
        return not self.coefficients

    def _combine(self, other: LinearTerm | Number, sign: int) -> LinearTerm:
        if not isinstance(other, LinearTerm):
            other = LinearTerm.const(other)
        merged: dict[str, Fraction] = dict(self.coefficients)
        for name, coef in other.coefficients:
            merged[name] = merged.get(name, Fraction(0)) + sign * coef
        return LinearTerm(
            tuple(sorted((n, c) for n, c in merged.items() if c != 0)),
            self.constant + sign * other.constant,
        )

    def __add__(self, other: LinearTerm | Number) -> LinearTerm:
        return self._combine(other, 1)

    def __sub__(self, other: LinearTerm | Number) -> LinearTerm:
        return self._combine(other, -1)

    def __mul__(self, factor: Number) -> LinearTerm:
        f = to_rational(factor)
        return LinearTerm(
            tuple((n, c * f) for n, c in self.coefficients if c * f != 0),
            self.constant * f,
        )

    __rmul__ = __mul__

    def evaluate(self, values: dict[str, Fraction]) -> Fraction:
        return self.constant + sum(
            (coef * values[name] for name, coef in self.coefficients),
            Fraction(0),
        )


@dataclass(frozen=True)
class Literal:
    """``term <= 0`` (or ``term < 0`` when *strict*)."""

    term: LinearTerm
    strict: bool = False

    def holds(self, values: dict[str, Fraction]) -> bool:
        v = self.term.evaluate(values)
        return v < 0 if self.strict else v <= 0


def leq(lhs: LinearTerm | Number, rhs: LinearTerm | Number) -> Literal:
    """Literal for ``lhs <= rhs``."""
    if not isinstance(lhs, LinearTerm):
        lhs = LinearTerm.const(lhs)
    return Literal(lhs - rhs)


def lt(lhs: LinearTerm | Number, rhs: LinearTerm | Number) -> Literal:
    """Literal for ``lhs < rhs``."""
    if not isinstance(lhs, LinearTerm):
        lhs = LinearTerm.const(lhs)
    return Literal(lhs - rhs, strict=True)


class ConstraintKind(enum.Enum):
    BOUND = "bound"
    NON_OVERLAP = "non_overlap"
    TEMPORAL = "temporal"
    CLEARANCE = "clearance"
    REFINEMENT = "refinement"


@dataclass(frozen=True)
class Constraint:
    """A disjunction of linear literals, tagged with what produced it.

    ``pair`` holds the batch indices the constraint is attributable to
    (one index for bounds, two for pairwise constraints).
    """

    kind: ConstraintKind
    pair: tuple[int, ...]
    literals: tuple[Literal, ...]

    def holds(self, values: dict[str, Fraction]) -> bool:
        return any(lit.holds(values) for lit in self.literals)


# ── Statuses ───────────────────────────────────────────────────────


class StatusKind(enum.Enum):
    VALID = "valid"
    INFEASIBLE = "infeasible"
    INDETERMINATE = "indeterminate"


class StatusReason(enum.Enum):
    SOLVER_UNKNOWN = "solver_unknown"
    BUDGET_EXCEEDED = "budget_exceeded"
    NO_FEASIBLE_SIZE = "no_feasible_size"
    GEOMETRY_DEGENERATE = "geometry_degenerate"
    PARTIAL_PLACEMENT = "partial_placement"


@dataclass(frozen=True)
class ArrangementStatus:
    """Outcome of one arrangement attempt."""

    kind: StatusKind
    size: int | None = None
    reason: StatusReason | None = None

    @classmethod
    def valid(cls, size: int | None = None) -> ArrangementStatus:
        return cls(StatusKind.VALID, size=size)

    @classmethod
    def infeasible(cls, reason: StatusReason | None = None) -> ArrangementStatus:
        return cls(StatusKind.INFEASIBLE, reason=reason)

    @classmethod
    def indeterminate(
        cls, reason: StatusReason, size: int | None = None,
    ) -> ArrangementStatus:
        return cls(StatusKind.INDETERMINATE, size=size, reason=reason)

    @property
    def is_valid(self) -> bool:
        return self.kind is StatusKind.VALID

    def __str__(self) -> str:
        if self.kind is StatusKind.VALID:
            return f"Valid({self.size})"
        if self.kind is StatusKind.INFEASIBLE:
            return "Infeasible"
        return f"Indeterminate({self.reason.value})"


# ── Results ────────────────────────────────────────────────────────


@dataclass
class PlacedObject:
    """An object with its resolved translation and start time."""

    object_id: int | str
    x: Fraction
    y: Fraction
    t: Fraction


@dataclass
class Solution:
    """Result of arranging one batch (one plate) of objects.

    Indices refer to the object list the batch was solved for.
    """

    positions: dict[int, tuple[Fraction, Fraction]] = field(default_factory=dict)
    times: dict[int, Fraction] = field(default_factory=dict)
    decided: list[int] = field(default_factory=list)
    remaining: list[int] = field(default_factory=list)
    size: int | None = None
    status: ArrangementStatus = field(
        default_factory=lambda: ArrangementStatus.infeasible())

    def placements(self, objects: Sequence[ArrangementObject]) -> list[PlacedObject]:
        """Decided objects in processing order."""
        ordered = sorted(self.decided, key=lambda i: (self.times[i], i))
        return [
            PlacedObject(
                object_id=objects[i].object_id,
                x=self.positions[i][0],
                y=self.positions[i][1],
                t=self.times[i],
            )
            for i in ordered
        ]


@dataclass
class Plate:
    """One filled plate of the final schedule (objects in processing order)."""

    placements: list[PlacedObject]
    size: int | None = None


@dataclass
class ScheduleResult:
    """All plates produced by the sub-global scheduler."""

    plates: list[Plate]
    remaining: list[int | str]
    status: ArrangementStatus

    @property
    def decided_ids(self) -> list[int | str]:
        return [p.object_id for plate in self.plates for p in plate.placements]


# ── Errors ─────────────────────────────────────────────────────────


class ArrangementError(Exception):
    """Base class for arrangement failures surfaced to callers."""

    reason: StatusReason | None = None


class GeometryDegenerate(ArrangementError):
    """Raised when a contour pair cannot be reasoned about exactly."""

    reason = StatusReason.GEOMETRY_DEGENERATE

    def __init__(self, object_id, detail: str) -> None:
        self.object_id = object_id
        self.detail = detail
        super().__init__(f"Degenerate geometry for object {object_id!r}: {detail}")


class SolverUnknown(ArrangementError):
    """Raised when the SMT solver returns an inconclusive verdict."""

    reason = StatusReason.SOLVER_UNKNOWN

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"Solver returned unknown{': ' + detail if detail else ''}")


class BudgetExceeded(ArrangementError):
    """Raised when an iteration or wall-clock budget runs out."""

    reason = StatusReason.BUDGET_EXCEEDED

    def __init__(self, what: str, best_size: int | None = None) -> None:
        self.what = what
        self.best_size = best_size
        super().__init__(f"Budget exceeded ({what}); best valid size: {best_size}")


class NoFeasibleSize(ArrangementError):
    """Raised when no plate size in the configured range admits a solution."""

    reason = StatusReason.NO_FEASIBLE_SIZE

    def __init__(self, object_ids: Sequence) -> None:
        self.object_ids = list(object_ids)
        super().__init__(
            f"No feasible plate size for objects {self.object_ids}")


class PartialPlacement(ArrangementError):
    """Raised (strict mode only) when some objects could not be placed."""

    reason = StatusReason.PARTIAL_PLACEMENT

    def __init__(self, result: ScheduleResult) -> None:
        self.result = result
        super().__init__(
            f"{len(result.remaining)} object(s) could not be placed: "
            f"{result.remaining}")


class ArrangementCancelled(ArrangementError):
    """Raised when the caller's cancellation event is set.

    ``partial`` holds the plates completed before cancellation.
    """

    def __init__(self, partial: ScheduleResult | None = None) -> None:
        self.partial = partial
        super().__init__("Arrangement cancelled")
