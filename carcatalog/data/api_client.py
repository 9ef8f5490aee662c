"""
HTTP client for the remote catalog query service.
"""
from typing import Any, Dict, List, Optional

import httpx

from carcatalog.core.config import CatalogConfig
from carcatalog.pipeline.view_models import RawRecord
from carcatalog.utils.logger import get_logger

logger = get_logger("data.api_client")

BRANDS_PATH = "/cars/car-brands"
MODELS_PATH = "/cars/car-models"


class CatalogApiError(RuntimeError):
    """Raised when the remote catalog service cannot deliver records."""


class CatalogApiClient:
    """
    Lightweight async client for the catalog REST API.

    Args:
        base_url: Service root, e.g. "https://api.example.com/api".
        token: Optional bearer token.
        timeout: Transport timeout in seconds.
        transport: Optional httpx transport (tests inject httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: CatalogConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> "CatalogApiClient":
        return cls(config.api_base_url, token=config.api_token, timeout=config.api_timeout, transport=transport)

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> List[RawRecord]:
        try:
            response = await self.client.request(method, path, json=json)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise CatalogApiError(
                f"{method} {path} -> HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.RequestError, ValueError) as exc:
            raise CatalogApiError(f"{method} {path} failed: {exc}") from exc

        if isinstance(payload, dict):
            # Some deployments wrap the list as {"data": [...]}
            payload = payload.get("data", payload.get("results"))
        if not isinstance(payload, list):
            raise CatalogApiError(f"{method} {path} returned {type(payload).__name__}, expected a list")

        logger.info("%s %s returned %d records", method, path, len(payload))
        return payload

    async def get_brands(self) -> List[RawRecord]:
        """Fetch every brand record."""
        return await self._request("GET", BRANDS_PATH)

    async def get_models(self, brand: str) -> List[RawRecord]:
        """Fetch the model records of one brand (matched on C_merke)."""
        return await self._request("POST", MODELS_PATH, json={"c_merke": brand})

    async def aclose(self) -> None:
        await self.client.aclose()
