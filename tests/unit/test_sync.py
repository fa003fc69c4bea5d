"""Unit tests for envsync.services.sync and ComparisonService.sync."""

import pytest

from envsync.errors import DependencyUnresolvedError, NotFoundError, SyncBatchError, ValidationError
from envsync.models import IN_SYNC, ComparisonRecord, EntityType, Environment
from envsync.services.entities import CollectionHandler, PageHandler, ProductHandler
from envsync.services.sync import SyncOrchestrator

P, S = Environment.PRODUCTION, Environment.STAGING


def _seed(stores, entity_type, key, production_id=None, staging_id=None, differences="Title"):
    return stores[entity_type].upsert(ComparisonRecord(
        key=key, production_id=production_id, staging_id=staging_id, title=key.title(),
        differences=differences, updated_at="2026-10-01T00:00:00Z",
    ))


def _page_node(entity_id, handle, updated_at="t1"):
    return {"id": entity_id, "handle": handle, "title": handle.title(), "updatedAt": updated_at}


class TestSyncOne:
    """Test cases for SyncOrchestrator.sync_one."""

    @pytest.fixture
    def pages(self, remote, stores):
        return SyncOrchestrator(remote, PageHandler(), stores, chunk_size=2)

    def test_unknown_key_is_not_found(self, pages):
        with pytest.raises(NotFoundError, match="ghost not found in production"):
            pages.sync_one("ghost", P, S)

    def test_key_without_source_id_is_not_found(self, pages, stores, remote):
        _seed(stores, EntityType.PAGES, "contact", staging_id="s1", differences="Missing in production")

        with pytest.raises(NotFoundError):
            pages.sync_one("contact", P, S)
        assert remote.mutations == []

    def test_create_stores_new_id_and_marks_in_sync(self, pages, stores, remote, make_page):
        remote.details[(P, "p1")] = {"id": "p1", **make_page("about")}
        _seed(stores, EntityType.PAGES, "about", production_id="p1", differences="Missing in staging")

        record = pages.sync_one("about", P, S)

        env, entity_type, op, variables = remote.mutations[0]
        assert (env, entity_type, op) == (S, EntityType.PAGES, "create")
        assert "id" not in variables
        assert variables["page"]["handle"] == "about"
        assert record.staging_id == "gid://fake/pages/1000"
        assert record.differences == IN_SYNC
        assert stores[EntityType.PAGES].get_by_key("about") == record

    def test_update_targets_existing_id(self, pages, stores, remote, make_page):
        remote.details[(S, "s1")] = {"id": "s1", **make_page("about", title="Staging title")}
        _seed(stores, EntityType.PAGES, "about", production_id="p1", staging_id="s1")

        record = pages.sync_one("about", S, P)

        _, _, op, variables = remote.mutations[0]
        assert op == "update"
        assert variables["id"] == "p1"
        assert variables["page"]["title"] == "Staging title"
        assert record.production_id == "p1"

    def test_user_errors_raise_validation_error_verbatim(self, pages, stores, remote, make_page):
        remote.details[(P, "p1")] = {"id": "p1", **make_page("about")}
        remote.rejections["about"] = [{"field": ["handle"], "message": "Handle has already been taken"}]
        seeded = _seed(stores, EntityType.PAGES, "about", production_id="p1")

        with pytest.raises(ValidationError) as exc_info:
            pages.sync_one("about", P, S)

        assert str(exc_info.value) == "Handle has already been taken"
        assert stores[EntityType.PAGES].get_by_key("about") == seeded


class TestCollectionDependencies:
    """Collections reference products by handle; ids are resolved on the target side."""

    @pytest.fixture
    def collections(self, remote, stores):
        return SyncOrchestrator(remote, CollectionHandler(), stores, chunk_size=2)

    @staticmethod
    def _collection(handle, products):
        return {
            "handle": handle,
            "title": handle.title(),
            "descriptionHtml": "",
            "sortOrder": "MANUAL",
            "templateSuffix": None,
            "seo": {"title": None, "description": None},
            "image": None,
            "products": {"edges": [{"node": {"id": pid, "handle": h}} for pid, h in products]},
        }

    def test_unresolved_products_block_the_write(self, collections, stores, remote):
        remote.details[(P, "pc")] = {"id": "pc", **self._collection("sale", [("pp1", "shoe"), ("pp2", "belt")])}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", staging_id="sp1")
        _seed(stores, EntityType.PRODUCTS, "belt", production_id="pp2")
        seeded = _seed(stores, EntityType.COLLECTIONS, "sale", production_id="pc", differences="Missing in staging")

        with pytest.raises(DependencyUnresolvedError) as exc_info:
            collections.sync_one("sale", P, S)

        assert exc_info.value.missing == ["belt"]
        assert "belt" in str(exc_info.value)
        assert remote.mutations == []
        assert stores[EntityType.COLLECTIONS].get_by_key("sale") == seeded

    def test_update_adds_only_missing_products(self, collections, stores, remote):
        remote.details[(P, "pc")] = {"id": "pc", **self._collection("sale", [("pp1", "shoe"), ("pp2", "belt")])}
        remote.details[(S, "sc")] = {"id": "sc", **self._collection("sale", [("sp1", "shoe")])}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", staging_id="sp1")
        _seed(stores, EntityType.PRODUCTS, "belt", production_id="pp2", staging_id="sp2")
        _seed(stores, EntityType.COLLECTIONS, "sale", production_id="pc", staging_id="sc")

        record = collections.sync_one("sale", P, S)

        assert remote.added_products == [(S, "sc", ["sp2"])]
        assert remote.mutations[0][3]["input"]["id"] == "sc"
        assert record.differences == IN_SYNC

    def test_create_adds_all_products(self, collections, stores, remote):
        remote.details[(P, "pc")] = {"id": "pc", **self._collection("sale", [("pp1", "shoe")])}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", staging_id="sp1")
        _seed(stores, EntityType.COLLECTIONS, "sale", production_id="pc", differences="Missing in staging")

        record = collections.sync_one("sale", P, S)

        assert remote.added_products == [(S, record.staging_id, ["sp1"])]


class TestProductOptions:
    """Test cases for product option handling."""

    @pytest.fixture
    def products(self, remote, stores):
        return SyncOrchestrator(remote, ProductHandler(sync_images=False), stores, chunk_size=2)

    @pytest.fixture
    def detail(self):
        return {
            "handle": "shoe",
            "title": "Shoe",
            "tags": ["red"],
            "category": {"id": "gid://shopify/TaxonomyCategory/aa-8"},
            "options": [{"name": "Size", "position": 1, "values": ["S", "M"]}],
            "media": {"edges": [{"node": {"mediaContentType": "IMAGE",
                                          "preview": {"image": {"url": "https://cdn/shoe.jpg", "altText": "Shoe"}}}}]},
        }

    def test_update_creates_options_separately(self, products, stores, remote, detail):
        remote.details[(P, "pp1")] = {"id": "pp1", **detail}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", staging_id="sp1")

        products.sync_one("shoe", P, S)

        variables = remote.mutations[0][3]
        assert "productOptions" not in variables["input"]
        assert variables["media"] == []
        assert remote.option_calls == [
            (S, "sp1", [{"name": "Size", "position": 1, "values": [{"name": "S"}, {"name": "M"}]}]),
        ]

    def test_category_travels_by_id(self, products, stores, remote, detail):
        remote.details[(P, "pp1")] = {"id": "pp1", **detail}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", staging_id="sp1")

        products.sync_one("shoe", P, S)

        assert remote.mutations[0][3]["input"]["category"] == "gid://shopify/TaxonomyCategory/aa-8"

    def test_uncategorised_product_sends_null_category(self, products, stores, remote, detail):
        detail["category"] = None
        remote.details[(P, "pp1")] = {"id": "pp1", **detail}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", differences="Missing in staging")

        products.sync_one("shoe", P, S)

        assert remote.mutations[0][3]["input"]["category"] is None

    def test_create_sends_options_inline(self, products, stores, remote, detail):
        remote.details[(P, "pp1")] = {"id": "pp1", **detail}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", differences="Missing in staging")

        products.sync_one("shoe", P, S)

        variables = remote.mutations[0][3]
        assert variables["input"]["productOptions"][0]["name"] == "Size"
        assert remote.option_calls == []

    def test_media_only_when_enabled(self, remote, stores, detail):
        remote.details[(P, "pp1")] = {"id": "pp1", **detail}
        _seed(stores, EntityType.PRODUCTS, "shoe", production_id="pp1", staging_id="sp1")

        SyncOrchestrator(remote, ProductHandler(sync_images=True), stores).sync_one("shoe", P, S)

        assert remote.mutations[0][3]["media"] == [
            {"alt": "Shoe", "mediaContentType": "IMAGE", "originalSource": "https://cdn/shoe.jpg"},
        ]


class TestBatchSync:
    """Test cases for chunked batch sync."""

    def test_progress_reported_per_chunk(self, service, remote, make_page):
        for i in range(5):
            remote.add(P, EntityType.PAGES, _page_node(f"p{i}", f"page-{i}"), make_page(f"page-{i}"))
        service.compare(EntityType.PAGES)
        seen = []

        result = service.sync(EntityType.PAGES, [f"page-{i}" for i in range(5)], S,
                              on_progress=lambda p: seen.append((p.current, p.total)))

        assert seen == [(2, 5), (4, 5), (5, 5)]
        assert result.summary() == "5 of 5 synced"

    def test_duplicate_keys_sync_once(self, service, remote, make_page):
        remote.add(P, EntityType.PAGES, _page_node("p1", "about"), make_page("about"))
        service.compare(EntityType.PAGES)

        result = service.sync(EntityType.PAGES, ["about", "about"], S)

        assert result.total == 1
        assert len(remote.mutations) == 1

    def test_failures_are_isolated_per_key(self, service, remote, stores, make_page):
        for i, handle in enumerate(["about", "bad", "faq"]):
            remote.add(P, EntityType.PAGES, _page_node(f"p{i}", handle), make_page(handle))
        remote.rejections["bad"] = [{"field": ["title"], "message": "Title can't be blank"}]
        service.compare(EntityType.PAGES)
        before = stores[EntityType.PAGES].get_by_key("bad")
        synced = []

        with pytest.raises(SyncBatchError) as exc_info:
            service.sync(EntityType.PAGES, ["about", "bad", "faq"], S, on_synced=lambda r: synced.append(r.key))

        result = exc_info.value.result
        assert result.synced == ["about", "faq"]
        assert result.failed == {"bad": "Title can't be blank"}
        assert str(exc_info.value) == "2 of 3 synced, 1 failed: bad: Title can't be blank"
        assert synced == ["about", "faq"]
        assert stores[EntityType.PAGES].get_by_key("bad") == before
        assert stores[EntityType.PAGES].get_by_key("faq").differences == IN_SYNC

    def test_compare_after_sync_is_in_sync(self, service, remote, stores, make_page):
        remote.add(P, EntityType.PAGES, _page_node("p1", "about", "t1"), make_page("about", title="About us"))
        remote.add(S, EntityType.PAGES, _page_node("s1", "about", "t0"), make_page("about"))
        service.compare(EntityType.PAGES)
        assert stores[EntityType.PAGES].get_by_key("about").differences == "Title mismatch"

        service.sync(EntityType.PAGES, ["about"], S)
        service.compare(EntityType.PAGES)

        record = stores[EntityType.PAGES].get_by_key("about")
        assert record.differences == IN_SYNC
        assert record.staging_id == "s1"
