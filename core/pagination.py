"""
core/pagination.py -- Page arithmetic shared by every paginated listing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# Upper bound for page query parameters; keeps offsets within SQLite INTEGER.
MAX_PAGE = 1_000_000


@dataclass(frozen=True)
class Page:
    current_page: int
    items_per_page: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.items_per_page) if self.items_per_page else 0

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1


def offset_for(page: int, limit: int) -> int:
    """Row offset for a 1-based page number."""
    return (max(page, 1) - 1) * limit
