def extract_file_name(url: str | None) -> str:
    """Basename of a file URL with the query string stripped.

    ``https://cdn.shopify.com/s/files/1/0/hero.jpg?v=1712`` -> ``hero.jpg``
    """
    if not url:
        return ""
    return url.split("?")[0].split("/")[-1]
