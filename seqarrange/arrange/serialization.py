"""Arrangement serialization — JSON conversion.

Coordinates are written as floats for consumers; the exact rationals are
kept alongside as ``"p/q"`` strings under ``exact`` so a schedule can be
read back without loss.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Sequence

from .models import (
    ArrangementObject, ArrangementStatus, PlacedObject, Plate, ScheduleResult,
    Solution, StatusKind, StatusReason, make_object,
)


def _contour(contour) -> list[list[float]]:
    return [[float(x), float(y)] for x, y in contour]


def status_to_dict(status: ArrangementStatus) -> dict:
    return {
        "kind": status.kind.value,
        "size": status.size,
        "reason": status.reason.value if status.reason else None,
    }


def parse_status(data: dict) -> ArrangementStatus:
    return ArrangementStatus(
        kind=StatusKind(data["kind"]),
        size=data.get("size"),
        reason=StatusReason(data["reason"]) if data.get("reason") else None,
    )


def object_to_dict(obj: ArrangementObject) -> dict:
    """Serialize an ArrangementObject to a JSON-safe dict."""
    return {
        "id": obj.object_id,
        "contour": _contour(obj.contour),
        **({"clearance_zones": [_contour(z) for z in obj.clearance_zones]}
           if obj.clearance_zones else {}),
        "duration": float(obj.duration),
    }


def parse_object(data: dict) -> ArrangementObject:
    """Parse an object dict (``id``, ``contour``, optional zones/duration)."""
    return make_object(
        data["id"],
        data["contour"],
        data.get("clearance_zones", ()),
        data.get("duration", 1),
    )


def parse_objects(data: dict | list) -> list[ArrangementObject]:
    """Accept either a bare list or ``{"objects": [...]}``."""
    items = data["objects"] if isinstance(data, dict) else data
    return [parse_object(o) for o in items]


def _placement_to_dict(p: PlacedObject) -> dict:
    return {
        "id": p.object_id,
        "x": float(p.x),
        "y": float(p.y),
        "t": float(p.t),
        "exact": {"x": str(p.x), "y": str(p.y), "t": str(p.t)},
    }


def _parse_placement(data: dict) -> PlacedObject:
    exact = data.get("exact", {})
    return PlacedObject(
        object_id=data["id"],
        x=Fraction(exact.get("x", repr(float(data["x"])))),
        y=Fraction(exact.get("y", repr(float(data["y"])))),
        t=Fraction(exact.get("t", repr(float(data["t"])))),
    )


def solution_to_dict(solution: Solution, objects: Sequence[ArrangementObject]) -> dict:
    """Serialize a single-plate Solution (ids instead of batch indices)."""
    return {
        "status": status_to_dict(solution.status),
        "size": solution.size,
        "placements": [_placement_to_dict(p) for p in solution.placements(objects)],
        "remaining": [objects[i].object_id for i in solution.remaining],
    }


def schedule_to_dict(result: ScheduleResult) -> dict:
    """Serialize a ScheduleResult to a JSON-safe dict."""
    return {
        "status": status_to_dict(result.status),
        "plates": [
            {
                "size": plate.size,
                "placements": [_placement_to_dict(p) for p in plate.placements],
            }
            for plate in result.plates
        ],
        "remaining": list(result.remaining),
    }


def parse_schedule(data: dict) -> ScheduleResult:
    """Parse a schedule dict back into a ScheduleResult."""
    plates = [
        Plate(
            placements=[_parse_placement(p) for p in plate["placements"]],
            size=plate.get("size"),
        )
        for plate in data["plates"]
    ]
    return ScheduleResult(
        plates=plates,
        remaining=list(data.get("remaining", [])),
        status=parse_status(data["status"]),
    )
