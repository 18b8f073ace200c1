from __future__ import annotations

from enum import Enum

from core.domain.entities.base_entity import AnalyticsEntity


class SwapProtocol(str, Enum):
    V2 = "V2"
    V3 = "V3"


class SwapEventEntity(AnalyticsEntity):
    """
    Decoded swap payload of one pool log.

    amount0/amount1 are the unsigned magnitudes the classifier matches transfers against:
      - V2: amount0 is the amount entering the pool, amount1 the amount leaving it.
      - V3: amount0 is |token0 delta|, amount1 is |token1 delta|.
    """

    protocol: SwapProtocol
    pool_address: str
    amount0: int
    amount1: int

    def counter_amount(self, matched_value: int) -> int:
        """
        Return the swap amount that was not matched by the counter-asset transfer.
        """
        return self.amount1 if self.amount0 == matched_value else self.amount0


class PoolPairEntity(AnalyticsEntity):
    """
    A pool split into its traded (base) token and its quote-class token.
    """

    pool_address: str
    base_token: str
    quote_token: str
    quote_is_token0: bool
