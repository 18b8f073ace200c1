from __future__ import annotations

import asyncio
import itertools
import logging
import random
from typing import Any, List, Optional

import httpx

from core.domain.errors import UpstreamServiceError

RETRY_STATUSES = {429, 500, 502, 503, 504}


class JsonRpcError(UpstreamServiceError):
    """
    Error object returned by the node inside a JSON-RPC response (e.g. a reverted eth_call).
    """

    def __init__(self, code: Optional[int], message: str) -> None:
        super().__init__("rpc", f"[{code}] {message}")
        self.code = code
        self.rpc_message = message


class JsonRpcHttpClient:
    """
    Minimal Ethereum JSON-RPC client over HTTP.

    Uses POST JSON:
      { "jsonrpc": "2.0", "id": n, "method": "...", "params": [...] }

    Transport errors and retryable HTTP statuses are retried with capped exponential
    backoff; when retries are exhausted an UpstreamServiceError is raised.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        timeout_s: float = 20.0,
        retries: int = 3,
        backoff_cap_s: float = 5.0,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._endpoint = str(endpoint).strip()
        self._retries = max(1, int(retries))
        self._backoff_cap_s = float(backoff_cap_s)
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=5.0))
        self._ids = itertools.count(1)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        last_err = "request failed"
        for attempt in range(self._retries):
            try:
                r = await self._client.post(self._endpoint, json=payload)
            except httpx.HTTPError as exc:
                last_err = f"{type(exc).__name__}: {exc}"
            else:
                if r.status_code == 200:
                    body = r.json()
                    error = body.get("error")
                    if error:
                        raise JsonRpcError(error.get("code"), str(error.get("message", "")))
                    return body.get("result")
                if r.status_code not in RETRY_STATUSES:
                    raise UpstreamServiceError("rpc", f"{method} HTTP {r.status_code}", status_code=r.status_code)
                last_err = f"HTTP {r.status_code}"

            if attempt + 1 < self._retries:
                delay = min(2 ** attempt, self._backoff_cap_s) + random.random() / 2
                self._logger.debug("Retrying %s in %.2fs (%s)", method, delay, last_err)
                await asyncio.sleep(delay)

        raise UpstreamServiceError("rpc", f"{method} failed after {self._retries} attempt(s): {last_err}")
