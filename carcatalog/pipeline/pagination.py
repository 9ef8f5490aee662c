"""
Pagination controller.

Unbounded mode (desktop web) exposes the whole result. Paged mode
(constrained platforms) exposes a growing prefix driven by explicit
"load more" requests, with at most one advance in flight.
"""
import asyncio
from enum import Enum
from typing import List, Optional, Sequence

from carcatalog.pipeline.grouping import flatten
from carcatalog.pipeline.view_models import Group, ViewModel
from carcatalog.utils.logger import get_logger

logger = get_logger("pipeline.pagination")

DEFAULT_PAGE_SIZE = 20
DEFAULT_ADVANCE_DELAY = 0.1


class PageState(str, Enum):
    IDLE = "idle"
    ADVANCING = "advancing"


class PaginationController:
    """
    Page state for one session view.

    Args:
        page_size: Items added per page.
        paged: False for unbounded mode.
        advance_delay: Seconds an advance waits before moving the page boundary.
    """

    def __init__(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        paged: bool = True,
        advance_delay: float = DEFAULT_ADVANCE_DELAY,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.page_size = page_size
        self.paged = paged
        self.advance_delay = advance_delay
        self.current_page = 1
        self.state = PageState.IDLE
        self._groups: List[Group] = []
        self._items: List[ViewModel] = []
        # Bumped by reset() so an advance started before it cannot move the new boundary
        self._epoch = 0

    # ------------------------------------------------------------------ #
    # Source
    # ------------------------------------------------------------------ #

    def update(self, groups: Optional[Sequence[Group]]) -> None:
        """Replace the grouped result the pages are cut from."""
        self._groups = list(groups or [])
        self._items = flatten(self._groups)

    def reset(self) -> None:
        """Go back to the first page. Call whenever the query or ordering changes."""
        self.current_page = 1
        self._epoch += 1

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    @property
    def total(self) -> int:
        return len(self._items)

    @property
    def limit(self) -> Optional[int]:
        if not self.paged:
            return None
        return self.current_page * self.page_size

    @property
    def visible(self) -> List[ViewModel]:
        limit = self.limit
        if limit is None:
            return list(self._items)
        return self._items[:limit]

    @property
    def visible_groups(self) -> List[Group]:
        """The visible prefix, still sectioned under the original labels."""
        limit = self.limit
        if limit is None:
            return list(self._groups)

        sections: List[Group] = []
        remaining = limit
        for group in self._groups:
            if remaining <= 0:
                break
            items = group.items[:remaining]
            if items:
                sections.append(Group(label=group.label, items=items))
            remaining -= len(items)
        return sections

    @property
    def has_more(self) -> bool:
        if not self.paged:
            return False
        return len(self.visible) < self.total

    @property
    def is_advancing(self) -> bool:
        return self.state == PageState.ADVANCING

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    async def advance(self) -> bool:
        """
        Move the page boundary one page forward.

        Returns:
            True if the page moved; False if the request was dropped (unbounded
            mode, nothing left, another advance in flight, or reset meanwhile).
        """
        if not self.paged or self.state == PageState.ADVANCING or not self.has_more:
            return False

        self.state = PageState.ADVANCING
        epoch = self._epoch
        try:
            await asyncio.sleep(self.advance_delay)
            if epoch != self._epoch:
                logger.debug("Advance discarded: pagination was reset while advancing")
                return False
            self.current_page += 1
            logger.debug("Advanced to page %d (%d/%d visible)", self.current_page, len(self.visible), self.total)
            return True
        finally:
            self.state = PageState.IDLE
