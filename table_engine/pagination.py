"""
Pagination over the query pipeline's output.
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple, Union


@dataclass(frozen=True)
class PageResult:
    """
    One page of rows plus the counts needed to render page controls.

    total_pages is 0 for an empty result; display_total_pages floors it at 1
    for "Page 1 of 1" style labels.
    """
    page: Tuple[Any, ...]
    total_items: int
    total_pages: int
    page_index: int
    page_size: int

    @property
    def display_total_pages(self) -> int:
        return max(self.total_pages, 1)

    @property
    def has_previous(self) -> bool:
        return self.page_index > 1

    @property
    def has_next(self) -> bool:
        return self.page_index < self.total_pages

    @property
    def first_item(self) -> int:
        """1-based position of the first row on this page (0 when empty)."""
        if not self.page:
            return 0
        return (self.page_index - 1) * self.page_size + 1

    @property
    def last_item(self) -> int:
        if not self.page:
            return 0
        return self.first_item + len(self.page) - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_items': self.total_items,
            'total_pages': self.total_pages,
            'display_total_pages': self.display_total_pages,
            'page_index': self.page_index,
            'page_size': self.page_size,
            'has_previous': self.has_previous,
            'has_next': self.has_next,
            'first_item': self.first_item,
            'last_item': self.last_item,
        }


def count_pages(total_items: int, page_size: int) -> int:
    """ceil(total_items / page_size); 0 for an empty result."""
    if total_items <= 0:
        return 0
    return math.ceil(total_items / page_size)


def clamp_page(page_index: int, total_pages: int) -> int:
    """Clamp a page index into [1, max(total_pages, 1)]."""
    return max(1, min(page_index, max(total_pages, 1)))


def paginate(rows: Sequence[Any], page_index: int, page_size: int) -> PageResult:
    """
    Slice ordered rows into the requested page.

    Args:
        rows: Ordered rows from the query pipeline
        page_index: 1-based page number (clamped into range)
        page_size: Rows per page (must be positive)

    Returns:
        PageResult with the page slice and totals

    Examples:
        >>> paginate(['a', 'b', 'c'], 2, 2).page
        ('c',)

        >>> paginate([], 1, 5).total_pages
        0
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")

    total_items = len(rows)
    total_pages = count_pages(total_items, page_size)
    page_index = clamp_page(page_index, total_pages)
    start = (page_index - 1) * page_size
    return PageResult(
        page=tuple(rows[start:start + page_size]),
        total_items=total_items,
        total_pages=total_pages,
        page_index=page_index,
        page_size=page_size,
    )


def generate_page_numbers(current_page: int, total_pages: int) -> List[Union[int, str]]:
    """
    Generate smart pagination numbers with ellipsis for large page counts.

    Logic:
    - If 10 or fewer pages: show all page numbers
    - If more than 10 pages: show first, last, and pages around current with ellipsis

    Args:
        current_page: Current page number (1-indexed)
        total_pages: Total number of pages

    Returns:
        List of page numbers and ellipsis strings

    Examples:
        >>> generate_page_numbers(1, 5)
        [1, 2, 3, 4, 5]

        >>> generate_page_numbers(10, 50)
        [1, '...', 8, 9, 10, 11, 12, '...', 50]

        >>> generate_page_numbers(50, 50)
        [1, '...', 48, 49, 50]
    """
    if total_pages < 1:
        return [1]

    current_page = max(1, min(current_page, total_pages))

    if total_pages <= 10:
        return list(range(1, total_pages + 1))

    pages = {1, total_pages}
    start = max(1, current_page - 2)
    end = min(total_pages, current_page + 2)
    pages.update(range(start, end + 1))

    sorted_pages = sorted(pages)

    # Build result with ellipsis where there are gaps
    result = []
    for i, page in enumerate(sorted_pages):
        if i > 0 and page - sorted_pages[i-1] > 1:
            result.append('...')
        result.append(page)

    return result
