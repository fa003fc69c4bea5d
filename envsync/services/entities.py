# envsync/services/entities.py
from typing import Optional

from .. import config
from ..errors import ValidationError
from ..models import EntityType, Environment
from ..utils.files import extract_file_name
from ..utils.logger import info
from . import differ


def normalize_metafields(detail: dict) -> list[dict]:
    edges = ((detail or {}).get("metafields") or {}).get("edges") or []
    return [
        {
            "namespace": e["node"]["namespace"],
            "key": e["node"]["key"],
            "type": e["node"].get("type"),
            "value": e["node"].get("value"),
        }
        for e in edges
    ]


class EntityHandler:
    """What differs between collections, products, pages and files.

    The comparator and the sync orchestrator are generic; they ask the
    handler how to key a node, how to diff two details, what a mutation
    payload looks like and which other entity type it references.
    """

    entity_type: EntityType
    # node returned by the list query already holds every tracked field
    detail_from_node = False
    # entity type whose target-side ids the payload needs, if any
    depends_on: Optional[EntityType] = None

    def key_of(self, node: dict) -> str:
        return node.get("handle") or ""

    def title_of(self, node: dict) -> str:
        return node.get("title") or ""

    def url_of(self, node: dict) -> Optional[str]:
        return None

    def diff(self, production: dict, staging: dict) -> list[str]:
        raise NotImplementedError

    def dependencies(self, detail: dict) -> list[str]:
        """Keys of ``depends_on`` entities referenced by ``detail``."""
        return []

    def build_variables(self, detail: dict, target_id: Optional[str]) -> dict:
        """Mutation variables; ``target_id`` set means update, None means create."""
        raise NotImplementedError

    def after_write(self, client, target: Environment, target_id: str, detail: dict,
                    dependency_ids: list[str], created: bool, key: str):
        pass


class CollectionHandler(EntityHandler):
    entity_type = EntityType.COLLECTIONS
    depends_on = EntityType.PRODUCTS

    def diff(self, production, staging):
        return differ.diff_collections(production, staging)

    def dependencies(self, detail):
        edges = ((detail or {}).get("products") or {}).get("edges") or []
        return [e["node"]["handle"] for e in edges if e.get("node")]

    def build_variables(self, detail, target_id):
        image = detail.get("image")
        collection = {
            "handle": detail.get("handle"),
            "title": detail.get("title"),
            "descriptionHtml": detail.get("descriptionHtml"),
            "sortOrder": detail.get("sortOrder"),
            "templateSuffix": detail.get("templateSuffix"),
            "seo": detail.get("seo"),
            "image": {"altText": image.get("altText"), "src": image.get("url")} if image else None,
        }
        if target_id:
            collection = {"id": target_id, **collection}
        return {"input": collection}

    def after_write(self, client, target, target_id, detail, dependency_ids, created, key):
        if not dependency_ids:
            return
        current = client.get_detail(target, EntityType.COLLECTIONS, target_id) or {}
        existing = {e["node"]["id"] for e in ((current.get("products") or {}).get("edges") or []) if e.get("node")}
        to_add = [pid for pid in dependency_ids if pid not in existing]
        if not to_add:
            return
        result = client.add_collection_products(target, target_id, to_add)
        if result.user_errors:
            raise ValidationError(key, result.user_errors)
        info(f"[collections] added {len(to_add)} product(s) to {key} on {target.value}")


class ProductHandler(EntityHandler):
    entity_type = EntityType.PRODUCTS

    def __init__(self, sync_images: bool | None = None):
        self.sync_images = config.SYNC_PRODUCT_IMAGES if sync_images is None else sync_images

    def diff(self, production, staging):
        return differ.diff_products(production, staging)

    @staticmethod
    def media_inputs(detail: dict) -> list[dict]:
        media = []
        for e in ((detail.get("media") or {}).get("edges") or []):
            image = ((e.get("node") or {}).get("preview") or {}).get("image") or {}
            if not image.get("url"):
                continue
            media.append({
                "alt": image.get("altText"),
                "mediaContentType": e["node"].get("mediaContentType"),
                "originalSource": image["url"],
            })
        return media

    @staticmethod
    def option_inputs(detail: dict) -> list[dict]:
        options = []
        for o in (detail.get("options") or []):
            option = {
                "name": o.get("name"),
                "position": o.get("position"),
                "values": [{"name": v} for v in (o.get("values") or [])],
            }
            if o.get("linkedMetafield"):
                option["linkedMetafield"] = o["linkedMetafield"]
            options.append(option)
        return options

    def build_variables(self, detail, target_id):
        product = {
            "title": detail.get("title"),
            "handle": detail.get("handle"),
            "descriptionHtml": detail.get("descriptionHtml"),
            "vendor": detail.get("vendor"),
            "productType": detail.get("productType"),
            "status": detail.get("status"),
            "tags": detail.get("tags") or [],
            "templateSuffix": detail.get("templateSuffix"),
            "metafields": normalize_metafields(detail),
            "giftCardTemplateSuffix": detail.get("giftCardTemplateSuffix"),
            "requiresSellingPlan": detail.get("requiresSellingPlan"),
            "category": (detail.get("category") or {}).get("id"),
            "seo": detail.get("seo"),
        }
        if target_id:
            product = {"id": target_id, **product}
        else:
            product["productOptions"] = self.option_inputs(detail)
        return {"input": product, "media": self.media_inputs(detail) if self.sync_images else []}

    def after_write(self, client, target, target_id, detail, dependency_ids, created, key):
        # options only travel with the create payload
        if created:
            return
        options = self.option_inputs(detail)
        if options:
            client.create_product_options(target, target_id, options)


class PageHandler(EntityHandler):
    entity_type = EntityType.PAGES

    def diff(self, production, staging):
        return differ.diff_pages(production, staging)

    def build_variables(self, detail, target_id):
        page = {
            "title": detail.get("title"),
            "handle": detail.get("handle"),
            "body": detail.get("body"),
            "isPublished": detail.get("isPublished"),
            "templateSuffix": detail.get("templateSuffix"),
            "metafields": normalize_metafields(detail),
        }
        if target_id:
            return {"id": target_id, "page": page}
        return {"page": page}


class FileHandler(EntityHandler):
    entity_type = EntityType.FILES
    detail_from_node = True

    def key_of(self, node):
        return extract_file_name(differ.file_url(node))

    def title_of(self, node):
        return node.get("alt") or self.key_of(node)

    def url_of(self, node):
        return differ.file_url(node) or None

    def diff(self, production, staging):
        return differ.diff_files(production, staging)

    def build_variables(self, detail, target_id):
        if target_id:
            return {"files": [{"id": target_id, "alt": detail.get("alt") or ""}]}
        url = differ.file_url(detail)
        return {"files": [{
            "alt": detail.get("alt") or "",
            "contentType": "IMAGE",
            "originalSource": url,
            "filename": extract_file_name(url),
            "duplicateResolutionMode": "REPLACE",
        }]}


def build_handlers(sync_product_images: bool | None = None) -> dict[EntityType, EntityHandler]:
    return {
        EntityType.COLLECTIONS: CollectionHandler(),
        EntityType.PRODUCTS: ProductHandler(sync_images=sync_product_images),
        EntityType.PAGES: PageHandler(),
        EntityType.FILES: FileHandler(),
    }
