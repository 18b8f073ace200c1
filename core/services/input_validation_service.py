from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Tuple

from eth_utils import is_address, to_checksum_address

from core.domain.errors import InvalidInputError

MAX_PAGE_LIMIT = 1000


class InputValidationService:
    """
    Request input checks, run before any fetch starts.

    Rules:
    - address: 20-byte hex, returned in checksum form
    - dates: "YYYY-MM-DD" (midnight UTC) or ISO-8601 (naive values are UTC)
    - from_date must not be after to_date
    - page >= 1, 1 <= limit <= MAX_PAGE_LIMIT
    """

    @staticmethod
    def validate_address(raw: Optional[str]) -> str:
        value = (raw or "").strip()
        if not value:
            raise InvalidInputError("Token address query parameter is required.")
        if not is_address(value):
            raise InvalidInputError(f"Cannot process invalid address: {value}")
        return to_checksum_address(value)

    @staticmethod
    def parse_date(raw: Optional[str], *, field: str = "date") -> datetime:
        value = (raw or "").strip()
        if not value:
            raise InvalidInputError(f"Missing required parameter: {field}")
        try:
            if len(value) == 10:
                d = date.fromisoformat(value)
                parsed = datetime(d.year, d.month, d.day)
            else:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidInputError(f"Invalid {field}: {value}") from exc

        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    @classmethod
    def parse_date_range(cls, from_raw: Optional[str], to_raw: Optional[str]) -> Tuple[datetime, datetime]:
        from_date = cls.parse_date(from_raw, field="fromDate")
        to_date = cls.parse_date(to_raw, field="toDate")
        if from_date > to_date:
            raise InvalidInputError("fromDate must not be after toDate")
        return from_date, to_date

    @staticmethod
    def validate_pagination(page: int, limit: int) -> Tuple[int, int]:
        if page < 1:
            raise InvalidInputError("page must be >= 1")
        if limit < 1 or limit > MAX_PAGE_LIMIT:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")
        return page, limit
