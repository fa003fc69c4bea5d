# envsync/services/comparator.py
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Optional

from ..errors import DetailFetchError, FetchError
from ..models import (
    IN_SYNC,
    MISSING_IN_PRODUCTION,
    MISSING_IN_STAGING,
    CompareResult,
    ComparisonRecord,
    Environment,
    Progress,
)
from ..utils.logger import error, info, warn
from .entities import EntityHandler


def build_index(nodes: list[dict], handler: EntityHandler, environment: Environment) -> dict[str, dict]:
    index: dict[str, dict] = {}
    for node in nodes:
        key = handler.key_of(node)
        if not key:
            warn(f"[{handler.entity_type.value}] {environment.value} node {node.get('id')} has no key, skipped")
            continue
        index[key] = node
    return index


class Comparator:
    """Reconciles the production and staging entity lists of one type by key.

    Equal ``updatedAt`` on both sides is trusted as in sync. Otherwise both
    detail records are fetched side by side and diffed field by field.
    """

    def __init__(self, client, handler: EntityHandler):
        self.client = client
        self.handler = handler
        self.entity_type = handler.entity_type

    def _fetch_detail(self, key: str, environment: Environment, node: dict) -> dict:
        if self.handler.detail_from_node:
            return node
        try:
            detail = self.client.get_detail(environment, self.entity_type, node["id"])
        except FetchError as e:
            raise DetailFetchError(key, environment, e) from e
        if detail is None:
            raise DetailFetchError(key, environment, "record not found")
        return detail

    def _deep_diff(self, pool: ThreadPoolExecutor, key: str, production: dict, staging: dict) -> list[str]:
        futures = {
            Environment.PRODUCTION: pool.submit(self._fetch_detail, key, Environment.PRODUCTION, production),
            Environment.STAGING: pool.submit(self._fetch_detail, key, Environment.STAGING, staging),
        }
        wait(futures.values())
        details = {env: f.result() for env, f in futures.items()}
        return self.handler.diff(details[Environment.PRODUCTION], details[Environment.STAGING])

    def compare(self, production_nodes: list[dict], staging_nodes: list[dict],
                on_progress: Optional[Callable[[Progress], None]] = None) -> CompareResult:
        production = build_index(production_nodes, self.handler, Environment.PRODUCTION)
        staging = build_index(staging_nodes, self.handler, Environment.STAGING)
        keys = sorted(production.keys() | staging.keys())
        info(f"[{self.entity_type.value}] comparing {len(keys)} unique key(s)")

        result = CompareResult()
        with ThreadPoolExecutor(max_workers=2) as pool:
            for i, key in enumerate(keys, start=1):
                prod, stag = production.get(key), staging.get(key)
                try:
                    if stag is None:
                        differences = [MISSING_IN_STAGING]
                    elif prod is None:
                        differences = [MISSING_IN_PRODUCTION]
                    elif prod.get("updatedAt") == stag.get("updatedAt"):
                        differences = [IN_SYNC]
                    else:
                        differences = self._deep_diff(pool, key, prod, stag) or [IN_SYNC]
                except DetailFetchError as e:
                    error(f"[{self.entity_type.value}] {e}")
                    result.failed[key] = str(e)
                else:
                    source = prod or stag
                    result.records.append(ComparisonRecord(
                        key=key,
                        production_id=prod.get("id") if prod else None,
                        staging_id=stag.get("id") if stag else None,
                        title=self.handler.title_of(source),
                        differences=", ".join(differences),
                        updated_at=source.get("updatedAt") or "",
                        url=self.handler.url_of(source),
                    ))
                if on_progress:
                    on_progress(Progress(i, len(keys)))
        return result
