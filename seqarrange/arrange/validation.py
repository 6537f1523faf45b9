"""Printability checker for finished schedules.

Independent of the solver: plates are re-checked with shapely against the
physical plate, pairwise overlap, the single-head time line and the
clearance zones in processing order.
"""

from __future__ import annotations

from itertools import combinations
from typing import Iterable, Sequence

from shapely.geometry import box as shapely_box

from seqarrange.config import DEFAULT_CONFIG, SolverConfiguration

from .geometry import overlaps, to_polygon
from .models import ArrangementObject, Plate


def _by_id(objects: Iterable[ArrangementObject]) -> dict:
    return {o.object_id: o for o in objects}


def find_violations(
    objects: Sequence[ArrangementObject],
    plate: Plate,
    config: SolverConfiguration = DEFAULT_CONFIG,
) -> list[str]:
    """Return human-readable violations of one plate (empty = printable)."""
    lookup = _by_id(objects)
    tol = config.overlap_tolerance
    errors: list[str] = []

    for p in plate.placements:
        if p.object_id not in lookup:
            errors.append(f"Unknown object {p.object_id!r} on plate")
    placed = [p for p in plate.placements if p.object_id in lookup]

    bed = shapely_box(0, 0, config.plate_x_size, config.plate_y_size).buffer(tol)
    polys = {}
    for p in placed:
        poly = to_polygon(lookup[p.object_id].contour, p.x, p.y)
        polys[p.object_id] = poly
        if not bed.covers(poly):
            errors.append(f"Object {p.object_id!r} leaves the plate")

    for a, b in combinations(placed, 2):
        if overlaps(polys[a.object_id], polys[b.object_id], tol):
            errors.append(f"Objects {a.object_id!r} and {b.object_id!r} overlap")

    ordered = sorted(placed, key=lambda p: p.t)
    for k, later in enumerate(ordered):
        if later.t < -tol:
            errors.append(f"Object {later.object_id!r} starts before time 0")
        if k > 0:
            prev = ordered[k - 1]
            if prev.t + lookup[prev.object_id].duration > later.t + tol:
                errors.append(
                    f"Objects {prev.object_id!r} and {later.object_id!r} "
                    f"are processed at the same time")
        for earlier in ordered[:k]:
            for zone in lookup[later.object_id].clearance_zones:
                zone_poly = to_polygon(zone, later.x, later.y)
                if overlaps(zone_poly, polys[earlier.object_id], tol):
                    errors.append(
                        f"Head clearance of {later.object_id!r} hits "
                        f"{earlier.object_id!r}, which is finished before it")
                    break
    return errors


def check_sequential_printability(
    objects: Sequence[ArrangementObject],
    plates: Sequence[Plate],
    config: SolverConfiguration = DEFAULT_CONFIG,
) -> bool:
    """True if every plate is printable and no object is placed twice."""
    seen = set()
    for plate in plates:
        for p in plate.placements:
            if p.object_id in seen:
                return False
            seen.add(p.object_id)
        if find_violations(objects, plate, config):
            return False
    return True
