import logging

from storefront.core.supabase_client import storage_configured, supabase_admin

logger = logging.getLogger(__name__)

BUCKET = "inventory"


def extract_path_from_public_url(url: str) -> str | None:
    """
    Given a public URL, extract the object path relative to the bucket.

    Example:
        https://<proj>.supabase.co/storage/v1/object/public/inventory/items/12/1.png
        -> 'items/12/1.png'
    """
    marker = f"/storage/v1/object/public/{BUCKET}/"
    idx = url.find(marker)
    if idx == -1:
        return None
    return url[idx + len(marker) :]


def delete_public_urls(urls: list[str]) -> int:
    """
    Best-effort removal of catalog images by public URL.

    URLs outside this bucket are skipped. Returns the number of objects
    requested for deletion; 0 when Storage is not configured.
    """
    paths = [p for p in (extract_path_from_public_url(u) for u in urls) if p]
    if not paths:
        return 0
    if not storage_configured():
        logger.info("Storage not configured; leaving %d image(s) in place", len(paths))
        return 0

    # Supabase Python client expects a list of paths.
    supabase_admin().storage.from_(BUCKET).remove(paths)
    return len(paths)
