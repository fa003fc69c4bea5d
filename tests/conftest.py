"""Shared fixtures: an in-memory stand-in for both Shopify stores."""

import copy
import itertools
import threading

import pytest

from envsync.errors import FetchError
from envsync.models import EntityType, Environment, MutationResult
from envsync.services.comparison import ComparisonService
from envsync.services.store import MemoryComparisonStore


class FakeRemote:
    """Implements the ShopifyClient surface against dicts.

    Nodes are what list queries return, details what detail queries
    return. Every call is recorded so tests can assert on traffic.
    """

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.nodes = {env: {t: [] for t in EntityType} for env in Environment}
        self.details: dict[tuple, dict] = {}
        self.list_calls: list[tuple] = []
        self.detail_calls: list[tuple] = []
        self.mutations: list[tuple] = []
        self.added_products: list[tuple] = []
        self.option_calls: list[tuple] = []
        self.rejections: dict[str, list[dict]] = {}   # handle -> userErrors
        self.failing_details: set[tuple] = set()       # (env, id)
        self._ids = itertools.count(1000)
        self._lock = threading.Lock()

    def add(self, env, entity_type, node, detail=None):
        self.nodes[env][entity_type].append(node)
        if detail is not None:
            self.details[(env, node["id"])] = {"id": node["id"], **detail}
        return node

    # Remote entity client surface

    def list_page(self, env, entity_type, cursor):
        self.list_calls.append((env, entity_type, cursor))
        nodes = self.nodes[env][entity_type]
        start = int(cursor or 0)
        end = start + self.page_size
        return {"nodes": nodes[start:end], "hasNextPage": end < len(nodes), "endCursor": str(end)}

    def get_detail(self, env, entity_type, entity_id):
        self.detail_calls.append((env, entity_type, entity_id))
        if (env, entity_id) in self.failing_details:
            raise FetchError(env, entity_type, "boom")
        detail = self.details.get((env, entity_id))
        return copy.deepcopy(detail) if detail else None

    def mutate(self, env, entity_type, op, variables):
        with self._lock:
            return self._mutate(env, entity_type, op, variables)

    def _mutate(self, env, entity_type, op, variables):
        self.mutations.append((env, entity_type, op, copy.deepcopy(variables)))
        payload = variables.get("page") or variables.get("input") or {}
        if payload.get("handle") in self.rejections:
            return MutationResult(id=None, user_errors=self.rejections[payload["handle"]])
        entity_id = variables.get("id") or payload.get("id")
        if op == "create":
            entity_id = f"gid://fake/{entity_type.value}/{next(self._ids)}"
            if entity_type is EntityType.PAGES:
                self._materialize_page(env, entity_id, payload)
        elif entity_type is EntityType.PAGES:
            self._materialize_page(env, entity_id, payload)
        return MutationResult(id=entity_id, user_errors=[])

    def add_collection_products(self, env, collection_id, product_ids):
        self.added_products.append((env, collection_id, list(product_ids)))
        return MutationResult(id=collection_id, user_errors=[])

    def create_product_options(self, env, product_id, options):
        self.option_calls.append((env, product_id, options))
        return MutationResult(id=product_id, user_errors=[])

    def _materialize_page(self, env, entity_id, page):
        detail = {
            "id": entity_id,
            "handle": page["handle"],
            "title": page["title"],
            "body": page["body"],
            "isPublished": page["isPublished"],
            "templateSuffix": page["templateSuffix"],
            "metafields": {"edges": [{"node": dict(m)} for m in page["metafields"]]},
            "updatedAt": "2026-10-18T12:00:00Z",
        }
        pages = self.nodes[env][EntityType.PAGES]
        pages[:] = [n for n in pages if n["handle"] != page["handle"]]
        pages.append({"id": entity_id, "handle": page["handle"], "title": page["title"],
                      "updatedAt": detail["updatedAt"]})
        self.details[(env, entity_id)] = detail


def page_detail(handle, title="About", body="<p>Hi</p>", published=True, metafields=None):
    return {
        "handle": handle,
        "title": title,
        "body": body,
        "isPublished": published,
        "templateSuffix": None,
        "metafields": {"edges": [{"node": m} for m in (metafields or [])]},
    }


@pytest.fixture
def make_page():
    return page_detail


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def stores():
    return {t: MemoryComparisonStore() for t in EntityType}


@pytest.fixture
def service(remote, stores):
    return ComparisonService(client=remote, stores=stores, page_delay=0, chunk_size=2, sleep=lambda s: None)
