"""
Arrangement web API.

Stateless: every request carries its objects and configuration overrides,
runs one arrangement (or check) and returns the result.  No session state
survives between requests.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from seqarrange.arrange import (
    ArrangementError,
    check_sequential_printability,
    find_violations,
    head_from_printer,
    parse_schedule,
    prepare_objects,
    schedule_objects,
    schedule_to_dict,
)
from seqarrange.config import (
    DEFAULT_CONFIG, available_printers, configuration_from_dict,
)


log = logging.getLogger(__name__)


# ── App ────────────────────────────────────────────────────────────

app = FastAPI(title="seqarrange")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Models ─────────────────────────────────────────────────────────

class ObjectModel(BaseModel):
    id: int | str
    contour: list[list[float]]
    clearance_zones: list[list[list[float]]] | None = None
    duration: float = 1.0
    height: float | None = None
    level_contours: dict[str, list[list[float]]] | None = None


class ArrangeRequest(BaseModel):
    objects: list[ObjectModel]
    printer: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class CheckRequest(BaseModel):
    objects: list[ObjectModel]
    schedule: dict[str, Any]
    printer: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


def _raw(objects: list[ObjectModel]) -> list[dict]:
    out = []
    for o in objects:
        item = {"id": o.id, "contour": o.contour, "duration": o.duration}
        if o.clearance_zones:
            item["clearance_zones"] = o.clearance_zones
        if o.height is not None:
            item["height"] = o.height
        if o.level_contours:
            item["level_contours"] = o.level_contours
        out.append(item)
    return out


def _prepare(objects: list[ObjectModel], printer: str | None, overrides: dict):
    head = head_from_printer(printer) if printer else None
    base = DEFAULT_CONFIG
    if head is not None:
        base = base.with_overrides(
            plate_x_size=head.plate_x_size, plate_y_size=head.plate_y_size)
    config = configuration_from_dict(overrides, base)
    return prepare_objects(_raw(objects), head, config), config


# ── Routes ─────────────────────────────────────────────────────────

@app.get("/api/health")
def health():
    return {"status": "ok", "printers": available_printers()}


@app.post("/api/arrange")
def arrange(req: ArrangeRequest):
    """Arrange the request's objects over as many plates as needed."""
    try:
        objects, config = _prepare(req.objects, req.printer, req.config)
        result = schedule_objects(objects, config)
    except (ArrangementError, ValueError) as exc:
        raise HTTPException(422, str(exc))
    log.info("Arranged %d object(s) on %d plate(s): %s",
             len(objects), len(result.plates), result.status)
    return schedule_to_dict(result)


@app.post("/api/check")
def check(req: CheckRequest):
    """Re-validate a finished schedule against its objects."""
    try:
        objects, config = _prepare(req.objects, req.printer, req.config)
        schedule = parse_schedule(req.schedule)
    except (ArrangementError, ValueError, KeyError) as exc:
        raise HTTPException(422, str(exc))
    return {
        "printable": check_sequential_printability(objects, schedule.plates, config),
        "violations": [
            find_violations(objects, plate, config) for plate in schedule.plates
        ],
    }


def main(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run("seqarrange.web.server:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
