from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex, function_signature_to_4byte_selector

from adapters.external.ethereum.json_rpc_http_client import JsonRpcError, JsonRpcHttpClient
from core.domain.entities.receipt_entity import LogEntryEntity, ReceiptEntity
from core.domain.entities.token_metadata_entity import TokenMetadataEntity
from core.repositories.chain_repository import ChainRepository


def _selector(signature: str) -> str:
    return encode_hex(function_signature_to_4byte_selector(signature))


SELECTORS = {
    "token0": _selector("token0()"),
    "token1": _selector("token1()"),
    "name": _selector("name()"),
    "symbol": _selector("symbol()"),
    "decimals": _selector("decimals()"),
    "totalSupply": _selector("totalSupply()"),
}


def _hex_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(str(value), 16)


def _decode_bytes32_text(raw: bytes) -> str:
    (value,) = decode(["bytes32"], raw)
    return value.rstrip(b"\x00").decode("utf-8", errors="ignore")


class EthereumChainRepository(ChainRepository):
    """
    ChainRepository backed by a JSON-RPC node.

    Notes:
    - Reverted/empty eth_call results mean "no data" and map to None.
    - Token metadata and block timestamps are memoized for the process lifetime.
    - ERC-20 name/symbol are read as ABI strings, falling back to bytes32 for older tokens.
    """

    def __init__(self, *, rpc: JsonRpcHttpClient, logger: logging.Logger | None = None) -> None:
        self._rpc = rpc
        self._logger = logger or logging.getLogger(self.__class__.__name__)
        self._metadata: Dict[str, TokenMetadataEntity] = {}
        self._block_timestamps: Dict[int, int] = {}

    async def get_receipt(self, tx_hash: str) -> Optional[ReceiptEntity]:
        raw = await self._rpc.call("eth_getTransactionReceipt", [tx_hash])
        if not raw:
            return None
        return self.parse_receipt(raw)

    @staticmethod
    def parse_receipt(raw: Dict[str, Any]) -> ReceiptEntity:
        logs = [
            LogEntryEntity(
                address=str(item.get("address", "")).lower(),
                topics=[str(t).lower() for t in item.get("topics") or []],
                data=str(item.get("data") or "0x").lower(),
                log_index=_hex_int(item.get("logIndex")),
            )
            for item in raw.get("logs") or []
        ]
        return ReceiptEntity(
            transaction_hash=str(raw.get("transactionHash", "")).lower(),
            status=_hex_int(raw.get("status")) == 1,
            block_number=_hex_int(raw.get("blockNumber")) or 0,
            from_address=str(raw.get("from") or "").lower(),
            to_address=str(raw["to"]).lower() if raw.get("to") else None,
            logs=logs,
        )

    async def get_block_timestamp(self, block_number: int) -> Optional[int]:
        cached = self._block_timestamps.get(block_number)
        if cached is not None:
            return cached
        block = await self._rpc.call("eth_getBlockByNumber", [hex(block_number), False])
        if not block:
            return None
        ts = _hex_int(block.get("timestamp"))
        if ts is not None:
            self._block_timestamps[block_number] = ts
        return ts

    async def get_pool_tokens(self, pool_address: str) -> Optional[Tuple[str, str]]:
        token0, token1 = await asyncio.gather(
            self._call(pool_address, "token0"),
            self._call(pool_address, "token1"),
        )
        if token0 is None or token1 is None:
            return None
        try:
            (addr0,) = decode(["address"], token0)
            (addr1,) = decode(["address"], token1)
        except DecodingError:
            return None
        return addr0.lower(), addr1.lower()

    async def get_token_metadata(self, token_address: str) -> Optional[TokenMetadataEntity]:
        address = token_address.lower()
        cached = self._metadata.get(address)
        if cached is not None:
            return cached

        raw_name, raw_symbol, raw_decimals, raw_supply = await asyncio.gather(
            self._call(address, "name"),
            self._call(address, "symbol"),
            self._call(address, "decimals"),
            self._call(address, "totalSupply"),
        )
        if raw_decimals is None or raw_name is None or raw_symbol is None:
            self._logger.debug("Incomplete ERC-20 metadata for %s", address)
            return None

        try:
            (decimals,) = decode(["uint8"], raw_decimals)
            name = self._decode_text(raw_name)
            symbol = self._decode_text(raw_symbol)
            supply = decode(["uint256"], raw_supply)[0] if raw_supply else None
        except (DecodingError, ValueError) as exc:
            self._logger.debug("Undecodable ERC-20 metadata for %s: %s", address, exc)
            return None

        meta = TokenMetadataEntity(
            address=address,
            name=name,
            symbol=symbol,
            decimals=int(decimals),
            total_supply=supply / 10 ** int(decimals) if supply is not None else None,
        )
        self._metadata[address] = meta
        return meta

    @staticmethod
    def _decode_text(raw: bytes) -> str:
        try:
            (value,) = decode(["string"], raw)
            return value
        except (DecodingError, ValueError, OverflowError):
            return _decode_bytes32_text(raw[:32])

    async def _call(self, to: str, fn: str) -> Optional[bytes]:
        try:
            result = await self._rpc.call("eth_call", [{"to": to, "data": SELECTORS[fn]}, "latest"])
        except JsonRpcError as exc:
            self._logger.debug("eth_call %s on %s reverted: %s", fn, to, exc.rpc_message)
            return None
        if not result or result == "0x":
            return None
        return bytes.fromhex(str(result)[2:])

