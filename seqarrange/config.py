"""Solver configuration for the arrangement engine.

One frozen dataclass holds every tuneable knob of a single arrangement
run: plate limits for the bounding-box search, batch size for the
sub-global scheduler, and the time/iteration budgets.  Nothing here is
mutated at runtime; callers pass a configuration explicitly (or rely on
``DEFAULT_CONFIG``) so no state survives between runs.

Printer descriptions (plate size + head slices) live in
``configs/printers/<name>.json`` and are loaded through ``load_printer``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path


PRINTERS_DIR = Path(__file__).resolve().parent.parent / "configs" / "printers"

SEARCH_STRATEGIES = ("linear", "binary")
NON_OVERLAP_ENCODINGS = ("core", "bounding")

# decimation precision → contour simplification tolerance (mm)
DECIMATION_TOLERANCES = {
    "undefined": 0.0,
    "low": 4.5,
    "high": 1.5,
}


@dataclass(frozen=True)
class SolverConfiguration:
    """All tuneable arrangement parameters in one place.

    Distances are in plate units (mm), times in abstract time units.
    """

    # ── Plate ──────────────────────────────────────────────────────
    plate_x_size: int = 250
    """Physical plate width.  Objects never leave ``[0, plate_x_size]``."""

    plate_y_size: int = 210
    """Physical plate depth."""

    # ── Bounding-box search ────────────────────────────────────────
    minimum_bounding_box_size: int = 10
    """Smallest square box the search tries."""

    maximum_bounding_box_size: int | None = None
    """Largest square box the search tries.  ``None`` = larger plate side."""

    bounding_box_step: int = 4
    """Size decrement of the linear search."""

    search_strategy: str = "linear"
    """``"linear"`` (descend until first failure) or ``"binary"``.  Binary
    search needs ``assume_monotonic``; without it the full scan runs."""

    assume_monotonic: bool = True
    """Stop at the first failing size.  When False the linear search scans
    the whole range and keeps the smallest valid size."""

    centered: bool = False
    """Centre the search box on the plate instead of anchoring it at the
    origin."""

    # ── Sub-global decomposition ───────────────────────────────────
    object_group_size: int = 4
    """Objects added to a plate per solver batch."""

    time_horizon: int | None = None
    """Upper bound on ``t + duration``.  ``None`` = sum of the durations
    on the plate, which always admits a sequential order."""

    # ── Encoding ───────────────────────────────────────────────────
    non_overlap_encoding: str = "core"
    """``"core"`` posts the weak disjunction over inscribed core boxes and
    lets refinement tighten it; ``"bounding"`` posts it over bounding
    boxes (sound up front, but loses interlocking placements)."""

    decimation_precision: str = "undefined"
    """Contour simplification level applied by ``prepare_objects``."""

    overlap_tolerance: float = 1e-6
    """Intersection area below which the float checker ignores overlap."""

    # ── Budgets ────────────────────────────────────────────────────
    max_refinements: int = 2000
    """Corrective constraints one refinement loop may post."""

    solver_timeout_ms: int = 8000
    """Per-check timeout handed to the SMT solver."""

    time_budget_s: float = 120.0
    """Wall-clock budget of one bounding-box search."""

    check_workers: int = 1
    """Threads used for the read-only pair checks of a refinement step."""

    def __post_init__(self) -> None:
        if self.search_strategy not in SEARCH_STRATEGIES:
            raise ValueError(
                f"search_strategy must be one of {SEARCH_STRATEGIES}, "
                f"got {self.search_strategy!r}")
        if self.non_overlap_encoding not in NON_OVERLAP_ENCODINGS:
            raise ValueError(
                f"non_overlap_encoding must be one of {NON_OVERLAP_ENCODINGS}, "
                f"got {self.non_overlap_encoding!r}")
        if self.decimation_precision not in DECIMATION_TOLERANCES:
            raise ValueError(
                f"decimation_precision must be one of "
                f"{tuple(DECIMATION_TOLERANCES)}, got {self.decimation_precision!r}")
        if self.object_group_size < 1:
            raise ValueError("object_group_size must be >= 1")
        if self.bounding_box_step < 1:
            raise ValueError("bounding_box_step must be >= 1")
        if self.minimum_bounding_box_size > self.bounding_box_limit:
            raise ValueError(
                "minimum_bounding_box_size exceeds the maximum bounding box size")

    # ── Derived helpers ────────────────────────────────────────────

    @property
    def bounding_box_limit(self) -> int:
        """Largest box size the search starts from."""
        if self.maximum_bounding_box_size is not None:
            return self.maximum_bounding_box_size
        return max(self.plate_x_size, self.plate_y_size)

    @property
    def decimation_tolerance(self) -> float:
        return DECIMATION_TOLERANCES[self.decimation_precision]

    def with_overrides(self, **overrides) -> SolverConfiguration:
        """Return a copy with some fields replaced."""
        return replace(self, **overrides)


# Module-level default, importable everywhere.
DEFAULT_CONFIG = SolverConfiguration()


def configuration_to_dict(config: SolverConfiguration) -> dict:
    """Serialize a configuration to a JSON-safe dict."""
    return {f.name: getattr(config, f.name) for f in fields(config)}


def configuration_from_dict(
    data: dict, base: SolverConfiguration = DEFAULT_CONFIG,
) -> SolverConfiguration:
    """Build a configuration from a (partial) dict on top of *base*.

    Unknown keys raise ``ValueError`` so typos do not pass silently.
    """
    known = {f.name for f in fields(SolverConfiguration)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    return replace(base, **data)


# ── Printer descriptions ───────────────────────────────────────────


@lru_cache(maxsize=None)
def _load_printer_file(path: str) -> dict:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def available_printers() -> list[str]:
    """Names of the bundled printer descriptions."""
    return sorted(p.stem for p in PRINTERS_DIR.glob("*.json"))


def load_printer(name_or_path: str) -> dict:
    """Load a printer description by bundled name or by file path.

    The returned dict has ``plate_x_size``, ``plate_y_size``,
    ``convex_slices`` and ``box_slices`` (lists of [x, y] contours
    relative to the nozzle), plus optional ``convex_levels`` /
    ``box_levels`` giving the height of each slice.
    """
    path = Path(name_or_path)
    if not path.suffix:
        path = PRINTERS_DIR / f"{name_or_path}.json"
    if not path.exists():
        raise ValueError(
            f"Unknown printer '{name_or_path}'. "
            f"Available: {', '.join(available_printers())}")
    return _load_printer_file(str(path.resolve()))
