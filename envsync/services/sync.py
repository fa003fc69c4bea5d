# envsync/services/sync.py
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Callable, Optional

from .. import config
from ..errors import DependencyUnresolvedError, NotFoundError, SyncError, ValidationError
from ..models import IN_SYNC, ComparisonRecord, EntityType, Environment, Progress, SyncResult
from ..utils.logger import error, info, tag
from .entities import EntityHandler
from .store import ComparisonStore


class SyncOrchestrator:
    """Pushes selected keys of one entity type from one environment to the other.

    Keys run in fixed-size chunks: the keys of a chunk run concurrently,
    chunks run one after another. A failing key is recorded and the run
    moves on; its comparison row is left as it was.
    """

    def __init__(self, client, handler: EntityHandler, stores: dict[EntityType, ComparisonStore],
                 chunk_size: int | None = None):
        self.client = client
        self.handler = handler
        self.entity_type = handler.entity_type
        self.stores = stores
        self.chunk_size = max(1, chunk_size or config.SYNC_CHUNK_SIZE)

    @property
    def store(self) -> ComparisonStore:
        return self.stores[self.entity_type]

    # =========================================================
    # One key
    # =========================================================

    def _resolve_dependencies(self, key: str, detail: dict, target: Environment) -> list[str]:
        if self.handler.depends_on is None:
            return []
        dep_store = self.stores[self.handler.depends_on]
        ids, missing = [], []
        for dep_key in self.handler.dependencies(detail):
            dep = dep_store.get_by_key(dep_key)
            dep_id = dep.id_for(target) if dep else None
            if dep_id:
                ids.append(dep_id)
            else:
                missing.append(dep_key)
        if missing:
            raise DependencyUnresolvedError(key, target, missing)
        return ids

    def sync_one(self, key: str, source: Environment, target: Environment) -> ComparisonRecord:
        record = self.store.get_by_key(key)
        if record is None or not record.id_for(source):
            raise NotFoundError(key, source)

        detail = self.client.get_detail(source, self.entity_type, record.id_for(source))
        if detail is None:
            raise NotFoundError(key, source)

        dependency_ids = self._resolve_dependencies(key, detail, target)

        target_id = record.id_for(target)
        op = "update" if target_id else "create"
        result = self.client.mutate(target, self.entity_type, op, self.handler.build_variables(detail, target_id))
        if result.user_errors:
            raise ValidationError(key, result.user_errors)

        new_id = target_id or result.id
        if not new_id:
            raise SyncError(f"{op} of {key} on {target.value} returned no id")
        if not target_id:
            # keep the new id even if follow-up writes fail, so a retry updates instead of duplicating
            record = self.store.upsert(record.with_id(target, new_id))

        self.handler.after_write(self.client, target, new_id, detail, dependency_ids, created=not target_id, key=key)

        stored = self.store.upsert(replace(record, differences=IN_SYNC))
        info(f"{tag(self.entity_type, source, target)} {op}d {key} -> {new_id}")
        return stored

    # =========================================================
    # Batch
    # =========================================================

    def sync(self, keys: list[str], target: Environment,
             on_progress: Optional[Callable[[Progress], None]] = None,
             on_synced: Optional[Callable[[ComparisonRecord], None]] = None) -> SyncResult:
        source = target.opposite
        keys = list(dict.fromkeys(keys))
        total = len(keys)
        result = SyncResult(total=total)
        info(f"{tag(self.entity_type, source, target)} syncing {total} key(s) in chunks of {self.chunk_size}")

        with ThreadPoolExecutor(max_workers=self.chunk_size) as pool:
            for start in range(0, total, self.chunk_size):
                chunk = keys[start:start + self.chunk_size]
                futures = [(k, pool.submit(self.sync_one, k, source, target)) for k in chunk]
                wait([f for _, f in futures])
                for k, f in futures:
                    try:
                        record = f.result()
                    except Exception as e:
                        error(f"{tag(self.entity_type, source, target)} {k}: {e}")
                        result.failed[k] = str(e)
                    else:
                        result.synced.append(k)
                        if on_synced:
                            on_synced(record)
                if on_progress:
                    on_progress(Progress(min(start + self.chunk_size, total), total))

        info(f"{tag(self.entity_type, source, target)} {result.summary()}")
        return result
