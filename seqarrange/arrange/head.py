"""Print-head geometry → per-object clearance zones.

A printer describes its head as horizontal *slices* relative to the
nozzle, each at a height level: convex slices (nozzle, extruder body)
sweep the object's convex hull, box slices (hose, gantry) sweep its
bounding box.  The zone of an object is the region that slice occupies
while the nozzle travels over the object, i.e. the Minkowski sum of the
two.

A slice only matters for objects that reach its level.  Objects may
carry their own cross-section per level (``level_contours``); an empty
one means the object stays below that level.  Without per-level data
the object ``height`` decides, and without a height every slice applies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Mapping, Sequence

from seqarrange.config import DEFAULT_CONFIG, SolverConfiguration, load_printer
from seqarrange.geometry.polygon import Contour, ensure_ccw, rational_contour, to_rational

from .geometry import bounding_box, decimate_contour
from .models import ArrangementObject, make_object
from .nfp import convex_hull


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeadGeometry:
    plate_x_size: int
    plate_y_size: int
    convex_slices: tuple[Contour, ...] = ()
    box_slices: tuple[Contour, ...] = ()
    convex_levels: tuple[Fraction, ...] = ()
    box_levels: tuple[Fraction, ...] = ()

    def slices(self):
        """``(kind, level, slice)`` for every slice, convex ones first.

        Slices without a configured level sit at the nozzle (level 0).
        """
        for kind, slices, levels in (("convex", self.convex_slices, self.convex_levels),
                                     ("box", self.box_slices, self.box_levels)):
            for k, s in enumerate(slices):
                yield kind, (levels[k] if k < len(levels) else Fraction(0)), s


def head_from_printer(printer: dict | str) -> HeadGeometry:
    """Build a ``HeadGeometry`` from a printer dict or bundled printer name."""
    data = load_printer(printer) if isinstance(printer, str) else printer
    return HeadGeometry(
        plate_x_size=int(data["plate_x_size"]),
        plate_y_size=int(data["plate_y_size"]),
        convex_slices=tuple(rational_contour(s) for s in data.get("convex_slices", [])),
        box_slices=tuple(rational_contour(s) for s in data.get("box_slices", [])),
        convex_levels=tuple(to_rational(h) for h in data.get("convex_levels", [])),
        box_levels=tuple(to_rational(h) for h in data.get("box_levels", [])),
    )


def minkowski_sum_convex(a: Contour, b: Contour) -> Contour:
    """Minkowski sum of two convex contours (CCW)."""
    return convex_hull((pa[0] + pb[0], pa[1] + pb[1]) for pa in a for pb in b)


def _box_sweep(contour: Contour, s: Contour) -> Contour:
    bbox = bounding_box(contour)
    sb = bounding_box(s)
    return (
        (bbox.min_x + sb.min_x, bbox.min_y + sb.min_y),
        (bbox.max_x + sb.max_x, bbox.min_y + sb.min_y),
        (bbox.max_x + sb.max_x, bbox.max_y + sb.max_y),
        (bbox.min_x + sb.min_x, bbox.max_y + sb.max_y),
    )


def clearance_zones(
    contour: Contour,
    head: HeadGeometry,
    height: Fraction | None = None,
    level_contours: Mapping[Fraction, Contour] | None = None,
) -> tuple[Contour, ...]:
    """Zones of every head slice the object reaches.

    *level_contours* maps a slice level to the object's cross-section at
    that level (used instead of the footprint; empty = level not reached).
    A slice above level 0 is skipped when *height* does not exceed it.
    """
    level_contours = level_contours or {}
    zones = []
    for kind, level, s in head.slices():
        if level in level_contours:
            body = level_contours[level]
            if not body:
                continue
        elif height is not None and 0 < level and height <= level:
            continue
        else:
            body = contour
        if kind == "convex":
            zones.append(minkowski_sum_convex(convex_hull(body), convex_hull(s)))
        else:
            zones.append(_box_sweep(body, s))
    return tuple(zones)


def _level_contours(item: dict) -> dict[Fraction, Contour]:
    return {
        to_rational(level): ensure_ccw(rational_contour(pts)) if pts else ()
        for level, pts in (item.get("level_contours") or {}).items()
    }


def prepare_objects(
    raw: Sequence[dict],
    head: HeadGeometry | None = None,
    config: SolverConfiguration = DEFAULT_CONFIG,
) -> list[ArrangementObject]:
    """Turn raw ``{"id", "contour", "duration"?, "clearance_zones"?,
    "height"?, "level_contours"?}`` dicts into validated objects.

    Contours are decimated per ``config.decimation_precision``.  Objects
    without explicit zones get them from *head* when one is given, for
    the slices they reach.
    """
    tolerance = config.decimation_tolerance
    out = []
    for item in raw:
        obj = make_object(
            item["id"], item["contour"],
            item.get("clearance_zones", ()),
            item.get("duration", 1),
        )
        contour = obj.contour
        if tolerance > 0:
            contour = decimate_contour(contour, tolerance)
            if len(contour) < len(obj.contour):
                log.debug("Decimated %r: %d → %d vertices",
                          obj.object_id, len(obj.contour), len(contour))
        zones = obj.clearance_zones
        if not zones and head is not None:
            height = item.get("height")
            if height is not None:
                height = to_rational(height)
                if height <= 0:
                    raise ValueError(f"Object {obj.object_id!r}: height must be positive")
            zones = clearance_zones(contour, head, height, _level_contours(item))
            log.debug("Object %r: %d clearance zone(s)", obj.object_id, len(zones))
        out.append(ArrangementObject(
            object_id=obj.object_id,
            contour=contour,
            clearance_zones=zones,
            duration=obj.duration,
        ))
    return out
