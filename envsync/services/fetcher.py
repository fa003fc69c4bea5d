# envsync/services/fetcher.py
import time
from enum import Enum
from typing import Callable, Optional

from .. import config
from ..errors import FetchError
from ..models import EntityType, Environment
from ..utils.logger import error, info


class FetchState(str, Enum):
    FETCHING = "fetching"
    DONE = "done"
    FAILED = "failed"


class PaginatedFetcher:
    """Drains one environment's entity list page by page.

    Starts in FETCHING with a null cursor; each page response either moves
    the cursor forward (hasNextPage) or ends in DONE. Any failed page ends
    in FAILED and the error propagates; nodes gathered so far are dropped.
    """

    def __init__(self, client, entity_type: EntityType, page_delay: float | None = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.client = client
        self.entity_type = entity_type
        self.page_delay = config.PAGE_DELAY_SEC if page_delay is None else page_delay
        self.sleep = sleep

    def fetch_all(self, environment: Environment) -> list[dict]:
        state = FetchState.FETCHING
        cursor: Optional[str] = None
        nodes: list[dict] = []
        pages = 0

        while state is FetchState.FETCHING:
            try:
                page = self.client.list_page(environment, self.entity_type, cursor)
            except FetchError as e:
                state = FetchState.FAILED
                error(f"[{self.entity_type.value}] fetching {environment.value} failed after {pages} page(s): {e}")
                raise

            pages += 1
            nodes.extend(page.get("nodes") or [])
            if page.get("hasNextPage"):
                cursor = page.get("endCursor")
                self.sleep(self.page_delay)
            else:
                state = FetchState.DONE

        info(f"[{self.entity_type.value}] fetched {len(nodes)} from {environment.value} in {pages} page(s)")
        return nodes
