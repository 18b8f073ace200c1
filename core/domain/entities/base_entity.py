from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AnalyticsEntity(BaseModel):
    """
    Base entity for every value flowing through the analytics pipeline.

    - Entities are frozen: receipts, classifications and price samples are never mutated after creation.
    - Enum fields are stored as their values so entities serialize without custom encoders.
    """

    model_config = ConfigDict(
        frozen=True,
        use_enum_values=True,
        populate_by_name=True,
    )
