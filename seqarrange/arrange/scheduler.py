"""Sub-global scheduler — plate-by-plate decomposition of a large object set.

A plate is filled a group at a time: each group of
``object_group_size`` objects is solved against everything already on
the plate, which stays fixed.  A group that cannot be placed sheds its
last object and is tried again; an object that fails on its own waits
for the next plate.  Plates are produced until every object is placed
or a plate cannot take any object.
"""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from seqarrange.config import DEFAULT_CONFIG, SolverConfiguration

from .geometry import bounding_box
from .models import (
    ArrangementCancelled, ArrangementObject, ArrangementStatus, BudgetExceeded,
    NoFeasibleSize, PartialPlacement, Plate, ScheduleResult, Solution, SolverUnknown,
    StatusKind, StatusReason,
)
from .nfp import GeometryCache
from .refinement import check_cancelled
from .search import search_bounding_box


log = logging.getLogger(__name__)


def _fits_plate(obj: ArrangementObject, config: SolverConfiguration) -> bool:
    """Whether the object's bounding box fits the largest search box."""
    box = bounding_box(obj.contour)
    limit = config.bounding_box_limit
    return (box.width <= min(config.plate_x_size, limit)
            and box.height <= min(config.plate_y_size, limit))


def arrange_plate(
    objects: Sequence[ArrangementObject],
    indices: Sequence[int] | None = None,
    config: SolverConfiguration = DEFAULT_CONFIG,
    cancel: threading.Event | None = None,
    cache: GeometryCache | None = None,
) -> Solution:
    """Place as many of ``objects[indices]`` as fit on one plate.

    Objects too large for the plate are deferred before any solving.  A
    failing group sheds its last member until it is placed or a single
    object fails on its own; only that object is deferred, the shed ones
    go back to the front of the queue.

    Returns a ``Solution`` whose ``decided`` indices carry final
    positions and start times; the rest are listed in ``remaining``.
    """
    if indices is None:
        indices = range(len(objects))
    cache = cache if cache is not None else GeometryCache()
    solution = Solution()
    fixed: dict = {}
    last_failure: ArrangementStatus | None = None

    queue = []
    for i in indices:
        if _fits_plate(objects[i], config):
            queue.append(i)
        else:
            log.warning("Object %r does not fit the plate; deferring",
                        objects[i].object_id)
            solution.remaining.append(i)

    while queue:
        group = queue[:config.object_group_size]
        queue = queue[len(group):]
        shed: list[int] = []
        while group:
            check_cancelled(cancel)
            result = search_bounding_box(objects, group, fixed, config, cancel, cache)
            if result.has_placement:
                for i in group:
                    x, y = result.positions[i]
                    fixed[i] = (x, y, result.times[i])
                solution.decided.extend(group)
                solution.size = result.size
                break
            if last_failure is None or last_failure.kind is not StatusKind.INDETERMINATE:
                last_failure = result.status
            if len(group) == 1:
                solution.remaining.append(group[0])
                log.debug("Object %r cannot join the plate (%s); deferring",
                          objects[group[0]].object_id, result.status)
                break
            shed.insert(0, group.pop())
        queue = shed + queue

    for i, (x, y, t) in fixed.items():
        solution.positions[i] = (x, y)
        solution.times[i] = t
    solution.remaining.sort()
    if solution.decided:
        solution.status = ArrangementStatus.valid(solution.size)
    elif last_failure is not None and last_failure.kind is StatusKind.INDETERMINATE:
        solution.status = last_failure
    else:
        solution.status = ArrangementStatus.infeasible(StatusReason.NO_FEASIBLE_SIZE)
    log.info("Plate: %d placed, %d deferred, %s",
             len(solution.decided), len(solution.remaining), solution.status)
    return solution


def _indeterminate_error(status: ArrangementStatus):
    if status.reason is StatusReason.SOLVER_UNKNOWN:
        return SolverUnknown("no object could be decided on the plate")
    return BudgetExceeded("plate search", status.size)


def schedule_objects(
    objects: Sequence[ArrangementObject],
    config: SolverConfiguration = DEFAULT_CONFIG,
    cancel: threading.Event | None = None,
    strict: bool = False,
) -> ScheduleResult:
    """Arrange all *objects* over as many plates as needed.

    Each plate starts from the objects the previous one left over, with a
    fresh index map.  When a plate takes nothing the accumulated plates
    are returned with the unplaced objects (``PARTIAL_PLACEMENT``).  If the
    first plate stays undecided because the solver gave up or a budget ran
    out, that indeterminate status is returned as is.  With *strict* the
    matching error is raised instead: ``PartialPlacement``,
    ``NoFeasibleSize``, ``BudgetExceeded`` or ``SolverUnknown``.

    Raises
    ------
    ArrangementCancelled
        If *cancel* is set; ``partial`` holds the plates completed so far.
    """
    ids = [o.object_id for o in objects]
    if len(set(ids)) != len(ids):
        raise ValueError("Object ids must be unique")

    cache = GeometryCache()
    pending = list(objects)
    plates: list[Plate] = []

    while pending:
        try:
            solution = arrange_plate(pending, None, config, cancel, cache)
        except ArrangementCancelled:
            partial = ScheduleResult(
                plates=plates,
                remaining=[o.object_id for o in pending],
                status=ArrangementStatus.indeterminate(StatusReason.PARTIAL_PLACEMENT),
            )
            raise ArrangementCancelled(partial) from None

        if not solution.decided:
            remaining = [o.object_id for o in pending]
            if solution.status.kind is StatusKind.INDETERMINATE:
                log.warning("Plate %d undecided: %s", len(plates) + 1, solution.status)
                if strict:
                    raise _indeterminate_error(solution.status)
                if not plates:
                    return ScheduleResult(
                        plates=[], remaining=remaining, status=solution.status)
            elif not plates:
                log.warning("No object fits on an empty plate")
                if strict:
                    raise NoFeasibleSize(remaining)
                return ScheduleResult(
                    plates=[], remaining=remaining,
                    status=ArrangementStatus.infeasible(StatusReason.NO_FEASIBLE_SIZE),
                )
            result = ScheduleResult(
                plates=plates, remaining=remaining,
                status=ArrangementStatus.indeterminate(StatusReason.PARTIAL_PLACEMENT),
            )
            log.warning("%d object(s) could not be placed on any plate", len(remaining))
            if strict:
                raise PartialPlacement(result)
            return result

        plates.append(Plate(placements=solution.placements(pending), size=solution.size))
        log.info("Plate %d done: %d object(s)", len(plates), len(solution.decided))
        pending = [pending[i] for i in solution.remaining]

    return ScheduleResult(
        plates=plates,
        remaining=[],
        status=ArrangementStatus.valid(max((p.size or 0) for p in plates) if plates else None),
    )
