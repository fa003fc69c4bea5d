# envsync/services/comparison.py
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .. import config
from ..clients.shopify import ShopifyClient
from ..errors import SyncBatchError
from ..models import CompareResult, ComparisonRecord, EntityType, Environment, Progress, SyncResult
from ..utils.logger import info
from .comparator import Comparator
from .entities import build_handlers
from .fetcher import PaginatedFetcher
from .store import ComparisonStore, SqliteComparisonStore
from .sync import SyncOrchestrator


class ComparisonService:
    """Entry point for callers: compare one entity type, sync keys, read results.

    Owns the remote client and one comparison store per entity type. View
    state stays with the caller, which can follow long runs through the
    ``on_progress`` callbacks.
    """

    def __init__(self, client=None, stores: Optional[dict[EntityType, ComparisonStore]] = None,
                 db_path: str | None = None, page_delay: float | None = None, chunk_size: int | None = None,
                 sync_product_images: bool | None = None, sleep: Callable[[float], None] = time.sleep):
        self.client = client or ShopifyClient()
        self.stores = stores or {t: SqliteComparisonStore(db_path or config.DB_PATH, t) for t in EntityType}
        self.handlers = build_handlers(sync_product_images)
        self.page_delay = page_delay
        self.chunk_size = chunk_size
        self.sleep = sleep

    def fetch_both(self, entity_type: EntityType) -> tuple[list[dict], list[dict]]:
        fetcher = PaginatedFetcher(self.client, entity_type, page_delay=self.page_delay, sleep=self.sleep)
        with ThreadPoolExecutor(max_workers=2) as pool:
            production = pool.submit(fetcher.fetch_all, Environment.PRODUCTION)
            staging = pool.submit(fetcher.fetch_all, Environment.STAGING)
            return production.result(), staging.result()

    def compare(self, entity_type: EntityType,
                on_progress: Optional[Callable[[Progress], None]] = None) -> CompareResult:
        production, staging = self.fetch_both(entity_type)
        result = Comparator(self.client, self.handlers[entity_type]).compare(production, staging, on_progress)

        store = self.stores[entity_type]
        result.records = [store.upsert(record) for record in result.records]
        pruned = store.delete_except([r.key for r in result.records] + list(result.failed))
        info(f"[{entity_type.value}] compare done: {len(result.records)} stored, "
             f"{len(result.failed)} failed, {pruned} stale removed")
        return result

    def sync(self, entity_type: EntityType, keys: list[str], target: Environment,
             on_progress: Optional[Callable[[Progress], None]] = None,
             on_synced: Optional[Callable[[ComparisonRecord], None]] = None) -> SyncResult:
        orchestrator = SyncOrchestrator(self.client, self.handlers[entity_type], self.stores, chunk_size=self.chunk_size)
        result = orchestrator.sync(keys, target, on_progress=on_progress, on_synced=on_synced)
        if not result.ok:
            raise SyncBatchError(result)
        return result

    def get_all(self, entity_type: EntityType) -> list[ComparisonRecord]:
        return self.stores[entity_type].get_all()

    def get_by_key(self, entity_type: EntityType, key: str) -> Optional[ComparisonRecord]:
        return self.stores[entity_type].get_by_key(key)

    def clear(self, entity_type: EntityType):
        self.stores[entity_type].clear_all()

    def fetch_details(self, entity_type: EntityType, environment: Environment, entity_id: str) -> Optional[dict]:
        return self.client.get_detail(environment, entity_type, entity_id)
