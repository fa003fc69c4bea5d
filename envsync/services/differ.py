# envsync/services/differ.py
"""Field-level comparison of detailed entities.

Each ``diff_*`` function takes the production and staging detail records
of one entity and returns the labels of the fields that differ. An empty
list means the tracked fields are equal; anything not compared here
(prices, inventory, variants) is deliberately untracked.
"""
from ..utils.files import extract_file_name
from ..utils.logger import debug


def compare_field(label: str, production_value, staging_value, differences: list[str]):
    if production_value != staging_value:
        differences.append(label)
        debug(f"{label} mismatch: {production_value!r} != {staging_value!r}")


def compare_tags(label: str, production_tags, staging_tags, differences: list[str]):
    if sorted(production_tags or []) != sorted(staging_tags or []):
        differences.append(label)
        debug(f"{label} mismatch: {production_tags!r} != {staging_tags!r}")


def metafield_map(detail: dict) -> dict[str, str]:
    edges = ((detail or {}).get("metafields") or {}).get("edges") or []
    return {f"{e['node']['namespace']}:{e['node']['key']}": e["node"].get("value") for e in edges}


def compare_metafields(production: dict, staging: dict, differences: list[str],
                       count_label: str = "Metafields count", content_label: str = "Metafields content"):
    """Count and content are independent checks; both labels can be reported.

    Content differs when a key present on both sides has different values,
    or when the counts match but the key sets do not.
    """
    prod_map, stag_map = metafield_map(production), metafield_map(staging)

    if len(prod_map) != len(stag_map):
        differences.append(count_label)
        debug(f"{count_label} mismatch: {len(prod_map)} != {len(stag_map)}")

    shared = prod_map.keys() & stag_map.keys()
    content_differs = any(prod_map[k] != stag_map[k] for k in shared)
    if len(prod_map) == len(stag_map) and prod_map.keys() != stag_map.keys():
        content_differs = True
    if content_differs:
        differences.append(content_label)
        debug(f"{content_label} mismatch")


# =========================================================
# Per entity type
# =========================================================

def diff_products(production: dict, staging: dict) -> list[str]:
    differences: list[str] = []
    compare_field("Title", production.get("title"), staging.get("title"), differences)
    compare_field("Description", production.get("description"), staging.get("description"), differences)
    compare_field("Status", production.get("status"), staging.get("status"), differences)
    compare_field("Vendor", (production.get("vendor") or "").strip(), (staging.get("vendor") or "").strip(), differences)
    compare_field("Product Type", production.get("productType"), staging.get("productType"), differences)
    compare_tags("Tags", production.get("tags"), staging.get("tags"), differences)
    compare_metafields(production, staging, differences)
    return differences


def diff_collections(production: dict, staging: dict) -> list[str]:
    differences: list[str] = []
    compare_field("Title", production.get("title"), staging.get("title"), differences)
    compare_field("Description", production.get("description"), staging.get("description"), differences)
    compare_field("HTML description", production.get("descriptionHtml"), staging.get("descriptionHtml"), differences)
    compare_field("Sort order", production.get("sortOrder"), staging.get("sortOrder"), differences)
    compare_field("Template suffix", production.get("templateSuffix"), staging.get("templateSuffix"), differences)
    compare_field("Image alt text", (production.get("image") or {}).get("altText"),
                  (staging.get("image") or {}).get("altText"), differences)
    prod_seo, stag_seo = production.get("seo") or {}, staging.get("seo") or {}
    compare_field("SEO title", prod_seo.get("title"), stag_seo.get("title"), differences)
    compare_field("SEO description", prod_seo.get("description"), stag_seo.get("description"), differences)
    return differences


def diff_pages(production: dict, staging: dict) -> list[str]:
    differences: list[str] = []
    compare_field("Title mismatch", production.get("title"), staging.get("title"), differences)
    compare_field("Body mismatch", production.get("body"), staging.get("body"), differences)
    compare_field("Published status mismatch", production.get("isPublished"), staging.get("isPublished"), differences)
    compare_field("Template suffix mismatch", production.get("templateSuffix"), staging.get("templateSuffix"), differences)
    compare_metafields(production, staging, differences,
                       count_label="Metafields count mismatch", content_label="Metafields content mismatch")
    return differences


def file_url(detail: dict) -> str:
    return (((detail or {}).get("preview") or {}).get("image") or {}).get("url") or ""


def diff_files(production: dict, staging: dict) -> list[str]:
    differences: list[str] = []
    compare_field("File name", extract_file_name(file_url(production)), extract_file_name(file_url(staging)), differences)
    compare_field("Alt text", production.get("alt"), staging.get("alt"), differences)
    return differences
