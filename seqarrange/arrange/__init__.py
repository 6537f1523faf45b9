"""Arrange — sequential placement and scheduling of objects on plates.

Submodules:
  models        Objects, symbolic constraints, solutions, statuses, errors.
  geometry      Shapely-backed helpers (overlap, boxes, core box, decimation).
  nfp           Exact no-fit pieces and separating cuts over rationals.
  solver        Narrow SMT session over z3.
  encoder       Objects + configuration → tagged constraints.
  refinement    Check / validate / cut loop for one box size.
  search        Smallest box size for one batch.
  scheduler     Plate-by-plate decomposition of large object sets.
  head          Print-head slices → clearance zones.
  validation    Printability checker for finished schedules.
  serialization JSON conversion.
"""

from .models import (
    ArrangementObject, make_object, PlacedObject, Plate, Solution,
    ScheduleResult, ArrangementStatus, StatusKind, StatusReason,
    ArrangementError, GeometryDegenerate, SolverUnknown, BudgetExceeded,
    NoFeasibleSize, PartialPlacement, ArrangementCancelled,
)
from .geometry import overlaps, bounding_box, core_box, decimate_contour
from .nfp import (
    GeometryCache, PairGeometry, SeparationCut, no_fit_pieces, separating_cut,
    separating_lines,
)
from .encoder import ConstraintEncoder
from .refinement import refine, Budget, RefinementOutcome
from .search import search_bounding_box, SearchResult
from .scheduler import arrange_plate, schedule_objects
from .head import HeadGeometry, head_from_printer, clearance_zones, prepare_objects
from .validation import find_violations, check_sequential_printability
from .serialization import (
    object_to_dict, parse_object, parse_objects, solution_to_dict,
    schedule_to_dict, parse_schedule,
)

__all__ = [
    # Models
    "ArrangementObject", "make_object", "PlacedObject", "Plate", "Solution",
    "ScheduleResult", "ArrangementStatus", "StatusKind", "StatusReason",
    # Errors
    "ArrangementError", "GeometryDegenerate", "SolverUnknown", "BudgetExceeded",
    "NoFeasibleSize", "PartialPlacement", "ArrangementCancelled",
    # Geometry
    "overlaps", "bounding_box", "core_box", "decimate_contour",
    "GeometryCache", "PairGeometry", "SeparationCut", "no_fit_pieces", "separating_cut",
    "separating_lines",
    # Engine
    "ConstraintEncoder", "refine", "Budget", "RefinementOutcome",
    "search_bounding_box", "SearchResult", "arrange_plate", "schedule_objects",
    # Head / checker
    "HeadGeometry", "head_from_printer", "clearance_zones", "prepare_objects",
    "find_violations", "check_sequential_printability",
    # Serialization
    "object_to_dict", "parse_object", "parse_objects", "solution_to_dict",
    "schedule_to_dict", "parse_schedule",
]
