import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from .dispatcher import RequestDispatcher
from .models import Page, WorkOutcome

logger = logging.getLogger(__name__)

FetchPage = Callable[[int], Awaitable[Page[Any]]]
PerItem = Callable[[Any], Awaitable[Any]]


@dataclass
class PageCursor:
    page_number: int = 1
    has_more: bool = True

    @staticmethod
    def has_records(page: Page) -> bool:
        # totalRecords is the authoritative gate; a page with data but
        # totalRecords == 0 ends the crawl.
        return len(page.data) > 0 and page.meta.total_records > 0

    def advance(self, page: Page) -> bool:
        """Apply one fetched page; return True when the next page should be fetched."""
        if self.has_records(page) and page.meta.total_pages > self.page_number:
            self.page_number += 1
            self.has_more = True
        else:
            self.has_more = False
        return self.has_more


class PaginationCrawler:
    """
    Walks a paginated listing and fans out one follow-up unit per item.

    Page fetches are not retried and their errors propagate to the caller;
    per-item failures only show up as failed outcomes.
    """

    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self.dispatcher = dispatcher
        self.pages_fetched: list[int] = []

    async def crawl(self, fetch_page: FetchPage, per_item: PerItem) -> list[WorkOutcome]:
        outcomes: list[WorkOutcome] = []
        cursor = PageCursor()

        while cursor.has_more:
            page = await self._fetch(fetch_page, cursor.page_number)
            if cursor.has_records(page):
                batch = await self.dispatcher.dispatch_all(
                    partial(per_item, item) for item in page.data
                )
                outcomes.extend(batch)
                logger.info(
                    f"Page {cursor.page_number}/{page.meta.total_pages}: "
                    f"{sum(1 for o in batch if o.ok)}/{len(batch)} items fetched"
                )
            cursor.advance(page)

        return outcomes

    async def collect(self, fetch_page: FetchPage) -> list[Any]:
        """Walk every page and return the listed items without dispatching."""
        items: list[Any] = []
        cursor = PageCursor()

        while cursor.has_more:
            page = await self._fetch(fetch_page, cursor.page_number)
            if cursor.has_records(page):
                items.extend(page.data)
            cursor.advance(page)

        return items

    async def _fetch(self, fetch_page: FetchPage, page_number: int) -> Page:
        logger.debug(f"Fetching page {page_number}")
        self.pages_fetched.append(page_number)
        return await fetch_page(page_number)
