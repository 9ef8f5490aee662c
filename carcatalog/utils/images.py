"""
Image URL mapping.

`resolve_image_url` is the single pure function that turns whatever image
reference a raw record carries into a display-ready absolute URL.
`optimize_image_url` adds CDN sizing parameters for preloading.
"""
import re
from typing import Any, Optional
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

WIX_IMAGE_PATTERN = re.compile(r"wix:image://v1/(.*?)~")
WIX_MEDIA_BASE = "https://static.wixstatic.com/media/"

# CDN size presets per display context
IMAGE_SIZE_PRESETS = {
    "brand": {"w": 120, "h": 80, "q": 85},
    "model": {"w": 400, "h": 300, "q": 80},
    "detail": {"w": 800, "h": 600, "q": 85},
}

# Quality override per preload tier
PRIORITY_QUALITY = {
    "critical": 90,
    "lazy": 75,
}


def resolve_image_url(source: Any, base_url: Optional[str] = None) -> str:
    """
    Map a raw image reference to a display-ready URL.

    Args:
        source: Raw value from the record (wix media reference, absolute or
            protocol-relative URL, relative path, or anything else).
        base_url: Optional base used to resolve relative paths.

    Returns:
        Absolute URL, or "" when the source cannot be resolved.
    """
    if not isinstance(source, str):
        return ""
    source = source.strip()
    if not source:
        return ""

    match = WIX_IMAGE_PATTERN.match(source)
    if match:
        return f"{WIX_MEDIA_BASE}{match.group(1)}~mv2.png"
    if source.startswith("wix:"):
        return ""

    if source.startswith("//"):
        return f"https:{source}"

    scheme = urlsplit(source).scheme.lower()
    if scheme in ("http", "https"):
        return source
    if scheme:
        # data:, file:, ... are not fetchable by the image widgets
        return ""

    if base_url:
        return urljoin(base_url.rstrip("/") + "/", source.lstrip("/"))
    return ""


def optimize_image_url(url: str, context: str = "model", priority: str = "normal") -> str:
    """Return `url` with CDN resize/format parameters for the given context and tier."""
    if not url:
        return url
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        return url

    preset = IMAGE_SIZE_PRESETS.get(context, IMAGE_SIZE_PRESETS["model"])
    params = {
        "w": preset["w"],
        "h": preset["h"],
        "q": PRIORITY_QUALITY.get(priority, preset["q"]),
        "f": "webp",
        "fit": "cover",
        "auto": "format,compress",
    }
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))
