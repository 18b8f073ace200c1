from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from adapters.external.moralis.moralis_http_client import MoralisHttpClient
from core.domain.entities.transfer_event_entity import TransferEventEntity, TransferPageEntity
from core.repositories.transfer_event_repository import TransferEventRepository


def _iso_to_seconds(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())


class MoralisTransferEventRepository(TransferEventRepository):
    """
    ERC-20 transfers of a token, newest first.

    Endpoint:
      GET /erc20/{address}/transfers?chain=&limit=&cursor=&order=DESC&from_date=&to_date=
    """

    def __init__(self, *, client: MoralisHttpClient, chain: str = "eth") -> None:
        self._client = client
        self._chain = chain

    async def fetch_page(
        self,
        token_address: str,
        *,
        limit: int,
        cursor: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> TransferPageEntity:
        params = {
            "chain": self._chain,
            "limit": int(limit),
            "order": "DESC",
            "cursor": cursor,
            "from_date": from_date.isoformat() if from_date else None,
            "to_date": to_date.isoformat() if to_date else None,
        }
        res = await self._client.get(f"/erc20/{token_address}/transfers", params=params)
        return TransferPageEntity(
            events=[self._to_event(item) for item in res.get("result") or [] if item.get("transaction_hash")],
            cursor=res.get("cursor") or None,
        )

    @staticmethod
    def _to_event(item: Dict[str, Any]) -> TransferEventEntity:
        block = item.get("block_number")
        return TransferEventEntity(
            transaction_hash=str(item["transaction_hash"]).lower(),
            block_number=int(block) if block is not None else None,
            block_timestamp=_iso_to_seconds(item.get("block_timestamp")),
        )
