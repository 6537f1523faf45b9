"""Bounding-box search — smallest square box a batch fits in.

One solver session per search.  Base constraints are posted once; every
candidate size is tried in its own push/pop scope, and the corrective
cuts learned there are re-posted at base level afterwards (they hold for
every size).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Sequence

from seqarrange.config import DEFAULT_CONFIG, SolverConfiguration

from .encoder import ConstraintEncoder, Placement
from .models import ArrangementObject, ArrangementStatus, StatusKind, StatusReason
from .nfp import GeometryCache
from .refinement import Budget, RefinementOutcome, refine
from .solver import SolverSession


log = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Best arrangement found by one search.

    ``positions``/``times`` cover the free and fixed objects of the batch
    and are empty when no size was valid.
    """

    status: ArrangementStatus
    size: int | None = None
    positions: dict[int, tuple[Fraction, Fraction]] = field(default_factory=dict)
    times: dict[int, Fraction] = field(default_factory=dict)
    refinements: int = 0
    attempts: int = 0

    @property
    def has_placement(self) -> bool:
        return bool(self.positions)


def candidate_sizes(config: SolverConfiguration) -> list[int]:
    """Sizes from the largest box down to the minimum, by the step."""
    return list(range(
        config.bounding_box_limit,
        config.minimum_bounding_box_size - 1,
        -config.bounding_box_step,
    ))


class _Attempts:
    """Runs single-size attempts against one session."""

    def __init__(self, session, encoder, config, budget, cancel) -> None:
        self.session = session
        self.encoder = encoder
        self.config = config
        self.budget = budget
        self.cancel = cancel
        self.refinements = 0
        self.count = 0

    def __call__(self, size: int) -> RefinementOutcome:
        self.count += 1
        self.session.push()
        try:
            self.session.add_all(self.encoder.size_bound(size))
            outcome = refine(self.session, self.encoder, self.config,
                             self.budget, self.cancel, size=size)
        finally:
            self.session.pop()
        self.session.add_all(outcome.cuts)
        self.refinements += outcome.refinements
        log.debug("size %d → %s (%d cut(s))", size, outcome.status, outcome.refinements)
        return outcome


def search_bounding_box(
    objects: Sequence[ArrangementObject],
    free: Sequence[int],
    fixed: dict[int, Placement] | None = None,
    config: SolverConfiguration = DEFAULT_CONFIG,
    cancel: threading.Event | None = None,
    cache: GeometryCache | None = None,
) -> SearchResult:
    """Find the smallest valid box size for ``objects[free]``.

    Objects in *fixed* keep their placement and count towards the box.
    With ``assume_monotonic`` the linear descent stops at the first
    failing size; otherwise the whole range is scanned, whatever the
    configured strategy (bisection relies on the frontier being monotonic).  An indeterminate
    attempt ends the search, keeping the best valid size found so far.
    """
    encoder = ConstraintEncoder(objects, free, fixed, config, cache)
    session = SolverSession(config.solver_timeout_ms)
    encoder.declare(session)
    session.add_all(encoder.base_constraints())
    attempt = _Attempts(session, encoder, config, Budget.from_config(config), cancel)

    sizes = candidate_sizes(config)
    if config.search_strategy == "binary" and config.assume_monotonic:
        best, stop = _binary(attempt, sizes)
    else:
        best, stop = _linear(attempt, sizes, config.assume_monotonic)

    result = SearchResult(
        status=ArrangementStatus.infeasible(StatusReason.NO_FEASIBLE_SIZE),
        refinements=attempt.refinements,
        attempts=attempt.count,
    )
    if best is not None:
        size, outcome = best
        result.size = size
        result.positions = outcome.positions
        result.times = outcome.times
        result.status = ArrangementStatus.valid(size)
    if stop is not None:
        result.status = ArrangementStatus.indeterminate(stop.reason, size=result.size)

    log.info("Search over %d object(s) (%d fixed): %s after %d attempt(s), %d cut(s)",
             len(encoder.free), len(encoder.fixed), result.status,
             attempt.count, attempt.refinements)
    return result


def _linear(attempt, sizes, monotonic):
    best = None
    for size in sizes:
        outcome = attempt(size)
        if outcome.status.is_valid:
            best = (size, outcome)
            continue
        if outcome.status.kind is StatusKind.INDETERMINATE:
            return best, outcome.status
        if monotonic:
            break
    return best, None


def _binary(attempt, sizes):
    ascending = sorted(sizes)
    if not ascending:
        return None, None
    outcome = attempt(ascending[-1])
    if outcome.status.kind is StatusKind.INDETERMINATE:
        return None, outcome.status
    if not outcome.status.is_valid:
        return None, None
    best = (ascending[-1], outcome)

    lo, hi = 0, len(ascending) - 1   # ascending[hi] is valid
    while lo < hi:
        mid = (lo + hi) // 2
        outcome = attempt(ascending[mid])
        if outcome.status.is_valid:
            best = (ascending[mid], outcome)
            hi = mid
        elif outcome.status.kind is StatusKind.INDETERMINATE:
            return best, outcome.status
        else:
            lo = mid + 1
    return best, None
