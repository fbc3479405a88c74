"""Data models for pingmon measurements."""

import math
from dataclasses import dataclass, replace

# Wire field order also fixes the order in which payloads are validated
PAYLOAD_FIELDS = (
    ("date", "date"),
    ("pingId", "ping_id"),
    ("deliveryAttempt", "delivery_attempt"),
    ("responseTime", "response_time"),
)


class ValidationError(ValueError):
    """Raised when a ping payload is malformed."""


def _is_non_negative_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


@dataclass(frozen=True)
class PingData:
    """One latency measurement and its delivery state."""

    ping_id: int
    delivery_attempt: int
    date: int  # epoch milliseconds
    response_time: float  # milliseconds

    def next_attempt(self) -> "PingData":
        """Return the same measurement for the following delivery attempt."""
        return replace(self, delivery_attempt=self.delivery_attempt + 1)

    def to_payload(self) -> dict:
        """Return the JSON object sent to the collector."""
        return {wire: getattr(self, attr) for wire, attr in PAYLOAD_FIELDS}

    @classmethod
    def from_payload(cls, payload) -> "PingData":
        """Build a record from a decoded JSON body.

        Args:
            payload: Decoded JSON value, expected to be an object

        Returns:
            PingData with the payload values unchanged

        Raises:
            ValidationError: If a field is missing, not a number or negative
        """
        if not isinstance(payload, dict):
            raise ValidationError(f"Expected a JSON object, got {payload!r}")

        values = {}
        for wire, attr in PAYLOAD_FIELDS:
            value = payload.get(wire)
            if not _is_non_negative_number(value):
                raise ValidationError(
                    f"Expected {wire} to be a positive number, got {value!r}"
                )
            values[attr] = value
        return cls(**values)
