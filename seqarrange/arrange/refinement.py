"""Counterexample-guided refinement of a candidate arrangement.

The solver only sees the weak box encoding, so a satisfying model can
still have overlapping contours or a head zone crossing an earlier
object.  Each model is validated exactly; every violation turns into a
corrective cut (a no-fit piece the relative offset must leave) and the
solver is asked again.  Cuts never exclude a valid placement, and a pair
has finitely many pieces, so the loop ends in VALID or UNSAT.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from fractions import Fraction

from seqarrange.config import DEFAULT_CONFIG, SolverConfiguration

from .encoder import ConstraintEncoder
from .models import (
    ArrangementCancelled, ArrangementStatus, Constraint, GeometryDegenerate,
    StatusReason,
)
from .nfp import SeparationCut, separating_cut
from .solver import SolverSession, Verdict


log = logging.getLogger(__name__)


class RefinementState(enum.Enum):
    CANDIDATE = "candidate"
    VALID = "valid"


@dataclass
class Budget:
    """Wall-clock deadline shared by all refinement loops of one search."""

    deadline: float | None = None

    @classmethod
    def from_config(cls, config: SolverConfiguration) -> Budget:
        if not config.time_budget_s:
            return cls()
        return cls(deadline=time.monotonic() + config.time_budget_s)

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline


@dataclass(frozen=True)
class Violation:
    """One exact violation found in a candidate model.

    ``ordered`` marks clearance violations (object j finished before i).
    """

    i: int
    j: int
    cut: SeparationCut
    ordered: bool = False


@dataclass
class RefinementOutcome:
    status: ArrangementStatus
    positions: dict[int, tuple[Fraction, Fraction]] = field(default_factory=dict)
    times: dict[int, Fraction] = field(default_factory=dict)
    cuts: list[Constraint] = field(default_factory=list)
    refinements: int = 0


def check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ArrangementCancelled()


# ── Exact validation ───────────────────────────────────────────────


def pair_violations(
    encoder: ConstraintEncoder, values: dict[str, Fraction], i: int, j: int,
) -> list[Violation]:
    """Exact non-overlap and clearance check of one pair under *values*."""
    cache = encoder.cache
    obj_i, obj_j = encoder.objects[i], encoder.objects[j]
    found: list[Violation] = []

    d = encoder.offset(i, j, values)
    cut = separating_cut(cache.pair(obj_i.contour, obj_j.contour), d)
    if cut is not None:
        found.append(Violation(i, j, cut))

    # Clearance only matters for the later of the two.
    ti, tj = encoder.time(i, values), encoder.time(j, values)
    if ti == tj:
        return found
    later, earlier = (i, j) if ti > tj else (j, i)
    offset = encoder.offset(later, earlier, values)
    for zone in encoder.objects[later].clearance_zones:
        cut = separating_cut(
            cache.pair(zone, encoder.objects[earlier].contour), offset)
        if cut is not None:
            found.append(Violation(later, earlier, cut, ordered=True))
    return found


def find_model_violations(
    encoder: ConstraintEncoder, values: dict[str, Fraction], workers: int = 1,
) -> list[Violation]:
    """All violations of the candidate model, in pair order.

    Raises
    ------
    GeometryDegenerate
        If a contour involved cannot be triangulated.
    """
    pairs = encoder.pairs()
    if workers > 1 and len(pairs) > 1:
        # Warm the cache serially; pair checks are then read-only.
        for i, j in pairs:
            encoder.cache.pair(encoder.objects[i].contour, encoder.objects[j].contour)
            for zone in encoder.objects[i].clearance_zones:
                encoder.cache.pair(zone, encoder.objects[j].contour)
            for zone in encoder.objects[j].clearance_zones:
                encoder.cache.pair(zone, encoder.objects[i].contour)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(
                lambda p: pair_violations(encoder, values, *p), pairs))
    else:
        results = [pair_violations(encoder, values, i, j) for i, j in pairs]
    return [v for found in results for v in found]


# ── Loop ───────────────────────────────────────────────────────────


def refine(
    session: SolverSession,
    encoder: ConstraintEncoder,
    config: SolverConfiguration = DEFAULT_CONFIG,
    budget: Budget | None = None,
    cancel: threading.Event | None = None,
    size: int | None = None,
) -> RefinementOutcome:
    """Run check → validate → cut until the model is valid or refuted.

    Returns an outcome whose status is ``Valid(size)``, ``Infeasible`` or
    ``Indeterminate`` (solver unknown, budget exceeded).  Cuts posted
    here are returned so the caller can keep them after popping a scope.
    """
    budget = budget or Budget()
    outcome = RefinementOutcome(status=ArrangementStatus.infeasible())
    state = RefinementState.CANDIDATE

    while state is RefinementState.CANDIDATE:
        check_cancelled(cancel)
        if budget.expired:
            log.warning("Time budget exhausted after %d refinement(s)",
                        outcome.refinements)
            outcome.status = ArrangementStatus.indeterminate(
                StatusReason.BUDGET_EXCEEDED)
            return outcome

        verdict = session.check()
        if verdict is Verdict.UNSAT:
            log.debug("size %s: unsat after %d refinement(s)", size, outcome.refinements)
            return outcome
        if verdict is Verdict.UNKNOWN:
            outcome.status = ArrangementStatus.indeterminate(
                StatusReason.SOLVER_UNKNOWN)
            return outcome

        values = session.values()
        try:
            violations = find_model_violations(encoder, values, config.check_workers)
        except GeometryDegenerate as exc:
            log.warning("Treating size %s as infeasible: %s", size, exc)
            outcome.status = ArrangementStatus.infeasible(
                StatusReason.GEOMETRY_DEGENERATE)
            return outcome

        if not violations:
            state = RefinementState.VALID
            break

        for v in violations:
            if outcome.refinements >= config.max_refinements:
                log.warning("Refinement cap (%d) reached at size %s",
                            config.max_refinements, size)
                outcome.status = ArrangementStatus.indeterminate(
                    StatusReason.BUDGET_EXCEEDED)
                return outcome
            cut = encoder.cut_constraint(v.i, v.j, v.cut, ordered=v.ordered)
            session.add(cut)
            outcome.cuts.append(cut)
            outcome.refinements += 1
        log.debug("size %s: posted %d cut(s)", size, len(violations))

    outcome.status = ArrangementStatus.valid(size)
    for i in encoder.active:
        outcome.positions[i] = encoder.position(i, values)
        outcome.times[i] = encoder.time(i, values)
    return outcome
