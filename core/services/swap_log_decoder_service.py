from __future__ import annotations

from typing import Optional, Tuple

from eth_abi import decode
from eth_utils import decode_hex

from core.domain.entities.receipt_entity import LogEntryEntity
from core.domain.entities.swap_event_entity import SwapEventEntity, SwapProtocol

V2_SWAP_TYPES = ["uint256", "uint256", "uint256", "uint256"]
V3_SWAP_TYPES = ["int256", "int256", "uint160", "uint128", "int24"]
SYNC_TYPES = ["uint112", "uint112"]


class SwapLogDecoderService:
    """
    Decodes raw log payloads of the supported pool and token events.

    Rules:
    - V2 Swap(amount0In, amount1In, amount0Out, amount1Out):
        token0 leaving the pool  -> (amount0, amount1) = (amount1In, amount0Out)
        otherwise                -> (amount0, amount1) = (amount0In, amount1Out)
    - V3 Swap(int256 amount0, int256 amount1, ...): both deltas as magnitudes.
    - Transfer(address,address,uint256): value in data, parties in topics[1]/topics[2].
    """

    @staticmethod
    def decode_swap(log: LogEntryEntity, protocol: SwapProtocol) -> SwapEventEntity:
        if protocol == SwapProtocol.V3:
            return SwapLogDecoderService.decode_v3_swap(log)
        return SwapLogDecoderService.decode_v2_swap(log)

    @staticmethod
    def decode_v2_swap(log: LogEntryEntity) -> SwapEventEntity:
        amount0_in, amount1_in, amount0_out, amount1_out = decode(V2_SWAP_TYPES, decode_hex(log.data))

        if amount0_out > 0:
            amount0, amount1 = amount1_in, amount0_out
        else:
            amount0, amount1 = amount0_in, amount1_out

        return SwapEventEntity(
            protocol=SwapProtocol.V2,
            pool_address=log.address.lower(),
            amount0=int(amount0),
            amount1=int(amount1),
        )

    @staticmethod
    def decode_v3_swap(log: LogEntryEntity) -> SwapEventEntity:
        amount0, amount1, _sqrt_price, _liquidity, _tick = decode(V3_SWAP_TYPES, decode_hex(log.data))
        return SwapEventEntity(
            protocol=SwapProtocol.V3,
            pool_address=log.address.lower(),
            amount0=abs(int(amount0)),
            amount1=abs(int(amount1)),
        )

    @staticmethod
    def decode_transfer_value(log: LogEntryEntity) -> Optional[int]:
        """
        Return the uint256 value of a Transfer log, or None for an empty payload.
        """
        if not log.has_data:
            return None
        raw = decode_hex(log.data)
        if len(raw) < 32:
            return None
        # some tokens append extra words; the value is always the first one
        (value,) = decode(["uint256"], raw[:32])
        return int(value)

    @staticmethod
    def decode_transfer_parties(log: LogEntryEntity) -> Tuple[Optional[str], Optional[str]]:
        """
        Return (from, to) of a Transfer log from its indexed topics.
        """
        src = SwapLogDecoderService.topic_to_address(log.topics[1]) if len(log.topics) > 1 else None
        dst = SwapLogDecoderService.topic_to_address(log.topics[2]) if len(log.topics) > 2 else None
        return src, dst

    @staticmethod
    def decode_reserves(log: LogEntryEntity) -> Tuple[int, int]:
        reserve0, reserve1 = decode(SYNC_TYPES, decode_hex(log.data))
        return int(reserve0), int(reserve1)

    @staticmethod
    def topic_to_address(topic: str) -> str:
        return "0x" + topic.lower()[-40:]
