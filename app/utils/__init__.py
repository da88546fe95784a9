from app.utils.dates import (
    FAR_FUTURE,
    today,
    effective_end,
    ranges_overlap,
    covers,
    add_months,
)
from app.utils.search import normalize_search_query, like_pattern

__all__ = [
    "FAR_FUTURE",
    "today",
    "effective_end",
    "ranges_overlap",
    "covers",
    "add_months",
    "normalize_search_query",
    "like_pattern",
]
