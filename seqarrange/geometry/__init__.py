from .polygon import (
    to_rational,
    rational_contour,
    validate_contour,
    polygon_area,
    ensure_ccw,
    segments_intersect,
    polygon_bounds,
)
