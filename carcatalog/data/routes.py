"""
Catalog routes.

"brands" lists every brand; "brands/<slug>" lists the models of one brand.
"""
import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

from carcatalog.pipeline.view_models import RecordKind

BRANDS_ROUTE = "brands"

# Letters (any script) and digits joined by single hyphens; accents are kept
# so the brand name sent to the remote service still matches.
_SLUG_PATTERN = re.compile(r"^[^\W_]+(?:-[^\W_]+)*$")


def spaces_to_hyphens(text: str) -> str:
    return re.sub(r"\s+", "-", (text or "").strip())


def hyphens_to_spaces(text: str) -> str:
    return (text or "").replace("-", " ").strip()


def slugify(text: str) -> str:
    """Route slug for a brand name ("Alfa Romeo" -> "alfa-romeo", "Škoda" -> "škoda")."""
    return unicodedata.normalize("NFC", spaces_to_hyphens(text)).lower()


def is_valid_slug(slug: str) -> bool:
    return bool(_SLUG_PATTERN.match(slug or ""))


@dataclass(frozen=True)
class CatalogRoute:
    kind: RecordKind
    brand_slug: Optional[str] = None

    @property
    def path(self) -> str:
        if self.kind == RecordKind.BRAND:
            return BRANDS_ROUTE
        return f"{BRANDS_ROUTE}/{self.brand_slug}"

    @property
    def brand_name(self) -> str:
        """Brand name the remote service expects for a model route."""
        return hyphens_to_spaces(self.brand_slug or "")

    def __str__(self) -> str:
        return self.path


def parse_route(route: str) -> CatalogRoute:
    """
    Parse "brands" or "brands/<slug>".

    Raises:
        ValueError: for any other shape or an invalid slug.
    """
    parts = [part for part in (route or "").strip().strip("/").split("/") if part]
    if parts == [BRANDS_ROUTE]:
        return CatalogRoute(kind=RecordKind.BRAND)
    if len(parts) == 2 and parts[0] == BRANDS_ROUTE:
        slug = unicodedata.normalize("NFC", parts[1]).lower()
        if not is_valid_slug(slug):
            raise ValueError(f"Invalid brand slug in route {route!r}")
        return CatalogRoute(kind=RecordKind.MODEL, brand_slug=slug)
    raise ValueError(f"Unknown catalog route {route!r}")
