# envsync/clients/shopify.py
from typing import Optional

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from .. import config
from ..errors import FetchError, TransientWriteError, WriteError
from ..models import EntityType, Environment, MutationResult
from ..utils.logger import debug, warn
from . import queries as q

TRANSIENT_STATUSES = (409, 429, 502, 503)


def graphql_url(domain: str) -> str:
    return f"https://{domain}/admin/api/{config.API_VERSION}/graphql.json"

def graphql_headers(token: str) -> dict:
    return {"Content-Type": "application/json", "X-Shopify-Access-Token": token}

def graphql(domain: str, token: str, query: str, variables=None, timeout: int = 30):
    r = requests.post(graphql_url(domain), headers=graphql_headers(token),
                      json={"query": query, "variables": variables or {}}, timeout=timeout)
    r.raise_for_status()
    return r.json()


@retry(
    reraise=True,
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=6),
    retry=retry_if_exception_type(TransientWriteError),
)
def _post_mutation_with_retry(domain: str, token: str, query: str, variables: dict, timeout: int) -> dict:
    r = requests.post(graphql_url(domain), headers=graphql_headers(token),
                      json={"query": query, "variables": variables}, timeout=timeout)
    if r.status_code == 200:
        return r.json()
    if r.status_code in TRANSIENT_STATUSES:
        raise TransientWriteError(r.text)
    raise RuntimeError(f"mutation failed {r.status_code}: {r.text}")


# (query, root field) per entity type
LIST_QUERIES = {
    EntityType.COLLECTIONS: (q.COLLECTIONS_QUERY, "collections"),
    EntityType.PRODUCTS: (q.PRODUCTS_QUERY, "products"),
    EntityType.PAGES: (q.PAGES_QUERY, "pages"),
    EntityType.FILES: (q.FILES_QUERY, "files"),
}

DETAIL_QUERIES = {
    EntityType.COLLECTIONS: (q.COLLECTION_DETAILS_QUERY, "collection"),
    EntityType.PRODUCTS: (q.PRODUCT_DETAILS_QUERY, "product"),
    EntityType.PAGES: (q.PAGE_DETAILS_QUERY, "page"),
    EntityType.FILES: (q.FILE_DETAILS_QUERY, "node"),
}

# (mutation, root field, payload field holding the id)
MUTATIONS = {
    (EntityType.COLLECTIONS, "create"): (q.CREATE_COLLECTION_MUTATION, "collectionCreate", "collection"),
    (EntityType.COLLECTIONS, "update"): (q.UPDATE_COLLECTION_MUTATION, "collectionUpdate", "collection"),
    (EntityType.PRODUCTS, "create"): (q.CREATE_PRODUCT_MUTATION, "productCreate", "product"),
    (EntityType.PRODUCTS, "update"): (q.UPDATE_PRODUCT_MUTATION, "productUpdate", "product"),
    (EntityType.PAGES, "create"): (q.CREATE_PAGE_MUTATION, "pageCreate", "page"),
    (EntityType.PAGES, "update"): (q.UPDATE_PAGE_MUTATION, "pageUpdate", "page"),
    (EntityType.FILES, "create"): (q.FILE_CREATE_MUTATION, "fileCreate", "files"),
    (EntityType.FILES, "update"): (q.FILE_UPDATE_MUTATION, "fileUpdate", "files"),
}


def _mutation_result(block: Optional[dict], payload_field: str) -> MutationResult:
    block = block or {}
    node = block.get(payload_field)
    if isinstance(node, list):
        node = node[0] if node else None
    return MutationResult(id=(node or {}).get("id"), user_errors=block.get("userErrors") or [])


class ShopifyClient:
    """Remote entity client for the production and staging stores.

    Queries fail fast with FetchError; mutations retry throttling and
    gateway errors, raise WriteError on any other failure, and report
    user errors back in the MutationResult.
    """

    def __init__(self, stores: dict | None = None, timeout: int | None = None,
                 files_search_query: str | None = None):
        self.stores = stores
        self.timeout = timeout or config.REQUEST_TIMEOUT_SEC
        self.files_search_query = files_search_query if files_search_query is not None else config.FILES_SEARCH_QUERY

    def _query(self, environment: Environment, entity_type: EntityType, query: str, variables: dict) -> dict:
        store = config.store_for(environment, self.stores)
        try:
            resp = graphql(store["domain"], store["token"], query, variables, timeout=self.timeout)
        except (requests.RequestException, ValueError) as e:
            raise FetchError(environment, entity_type, str(e)) from e
        top_errors = (resp or {}).get("errors")
        if top_errors:
            msg = "; ".join(e.get("message", "") for e in top_errors) if isinstance(top_errors, list) else str(top_errors)
            raise FetchError(environment, entity_type, msg)
        return (resp or {}).get("data") or {}

    def _mutation(self, environment: Environment, entity_type: EntityType, query: str, variables: dict) -> dict:
        store = config.store_for(environment, self.stores)
        try:
            resp = _post_mutation_with_retry(store["domain"], store["token"], query, variables, self.timeout)
        except (requests.RequestException, RuntimeError, TransientWriteError) as e:
            raise WriteError(environment, entity_type, str(e)) from e
        top_errors = (resp or {}).get("errors")
        if top_errors:
            raise WriteError(environment, entity_type, str(top_errors))
        return (resp or {}).get("data") or {}

    # -----------------------------------------------------
    # Queries
    # -----------------------------------------------------

    def list_page(self, environment: Environment, entity_type: EntityType, cursor: Optional[str]) -> dict:
        query, root = LIST_QUERIES[entity_type]
        variables = {"cursor": cursor}
        if entity_type is EntityType.FILES and self.files_search_query:
            variables["query"] = self.files_search_query
        data = self._query(environment, entity_type, query, variables)
        conn = data.get(root) or {}
        info = conn.get("pageInfo") or {}
        nodes = [e["node"] for e in (conn.get("edges") or []) if e.get("node")]
        debug(f"[{entity_type.value}] {environment.value} page cursor={cursor} nodes={len(nodes)}")
        return {"nodes": nodes, "hasNextPage": bool(info.get("hasNextPage")), "endCursor": info.get("endCursor")}

    def get_detail(self, environment: Environment, entity_type: EntityType, entity_id: str) -> Optional[dict]:
        query, root = DETAIL_QUERIES[entity_type]
        data = self._query(environment, entity_type, query, {"id": entity_id})
        return data.get(root)

    # -----------------------------------------------------
    # Mutations
    # -----------------------------------------------------

    def mutate(self, environment: Environment, entity_type: EntityType, op: str, variables: dict) -> MutationResult:
        query, root, payload_field = MUTATIONS[(entity_type, op)]
        data = self._mutation(environment, entity_type, query, variables)
        return _mutation_result(data.get(root), payload_field)

    def add_collection_products(self, environment: Environment, collection_id: str, product_ids: list[str]) -> MutationResult:
        data = self._mutation(environment, EntityType.COLLECTIONS, q.COLLECTION_ADD_PRODUCTS_MUTATION,
                              {"id": collection_id, "productIds": product_ids})
        return _mutation_result(data.get("collectionAddProducts"), "collection")

    def create_product_options(self, environment: Environment, product_id: str, options: list[dict]) -> MutationResult:
        data = self._mutation(environment, EntityType.PRODUCTS, q.CREATE_PRODUCT_OPTIONS_MUTATION,
                              {"productId": product_id, "options": options})
        result = _mutation_result(data.get("productOptionsCreate"), "product")
        if result.user_errors:
            warn(f"[products] productOptionsCreate on {environment.value}: {result.user_errors}")
        return result
