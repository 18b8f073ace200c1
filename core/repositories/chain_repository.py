from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from core.domain.entities.receipt_entity import ReceiptEntity
from core.domain.entities.token_metadata_entity import TokenMetadataEntity


class ChainRepository(ABC):
    """
    Read-only access to a blockchain node.

    "No data" (unknown receipt, reverted eth_call) is returned as None.
    Transport failures raise UpstreamServiceError.
    """

    @abstractmethod
    async def get_receipt(self, tx_hash: str) -> Optional[ReceiptEntity]:
        """
        Fetch the receipt of a transaction.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_block_timestamp(self, block_number: int) -> Optional[int]:
        """
        Return the block timestamp in seconds.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_pool_tokens(self, pool_address: str) -> Optional[Tuple[str, str]]:
        """
        Return (token0, token1) of a swap pool, lowercased.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_token_metadata(self, token_address: str) -> Optional[TokenMetadataEntity]:
        """
        Return ERC-20 metadata, trying the bytes32 profile when the string profile fails.
        """
        raise NotImplementedError
