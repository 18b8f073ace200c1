from __future__ import annotations

from core.domain.entities.base_entity import AnalyticsEntity

HOUR_SECONDS = 3600
MINUTE_SECONDS = 60


def hour_bucket(ts: int) -> int:
    """floor(ts / 3600) * 3600"""
    return (int(ts) // HOUR_SECONDS) * HOUR_SECONDS


def minute_bucket(ts: int) -> int:
    """floor(ts / 60) * 60"""
    return (int(ts) // MINUTE_SECONDS) * MINUTE_SECONDS


class PriceSampleEntity(AnalyticsEntity):
    """
    A USD price of a reference asset at a time bucket.

    asset is "ETH", "BTC" or a lowercase token address.
    """

    asset: str
    bucket: int
    price: float
