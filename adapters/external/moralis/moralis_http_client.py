from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from core.domain.errors import UpstreamServiceError


class MoralisHttpClient:
    """
    Minimal Moralis Web3 Data API client.

    Authorization:
      X-API-Key: {api_key}
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_s: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/")
        self._api_key = str(api_key).strip()
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=5.0))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {
            "Accept": "application/json",
            "X-API-Key": self._api_key,
        }
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            r = await self._client.get(f"{self._base_url}{path}", headers=headers, params=clean)
            r.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamServiceError(
                "moralis", f"GET {path} HTTP {exc.response.status_code}", status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamServiceError("moralis", f"GET {path} failed: {exc}") from exc
        return r.json()
