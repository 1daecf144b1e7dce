"""Parsing and validation of vote_cast webhook payloads."""

from dataclasses import dataclass
from typing import Any

from ..errors import ValidationError

VOTE_CAST = "vote_cast"
REQUIRED_FIELDS = ("evermarkId", "userAddress", "amount", "cycle")


def _non_negative_int(value: Any, field: str) -> int:
    # bool is an int subclass but never a valid amount or id
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a non-negative integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise ValidationError(f"{field} must be a non-negative integer")
    if number < 0:
        raise ValidationError(f"{field} must be a non-negative integer")
    return number


def normalize_evermark_id(value: Any) -> str:
    """Canonical decimal form of an evermark token ID ("042" -> "42")."""
    return str(_non_negative_int(value, "evermark_id"))


@dataclass
class VoteCastPayload:
    """A validated vote_cast webhook body."""

    evermark_id: str
    user_address: str
    amount: int
    cycle: int
    transaction_hash: str | None = None
    block_number: int | None = None

    @classmethod
    def from_dict(cls, data: Any) -> "VoteCastPayload":
        """
        Validate a decoded webhook body.

        Raises:
            ValidationError: If the body is not a well-formed vote_cast event
        """
        if not isinstance(data, dict):
            raise ValidationError("Webhook body must be a JSON object")
        if data.get("type") != VOTE_CAST:
            raise ValidationError("Invalid webhook data")

        fields = dict(data)
        # Older senders still call the cycle a season
        if fields.get("cycle") is None and fields.get("season") is not None:
            fields["cycle"] = fields["season"]

        missing = [f for f in REQUIRED_FIELDS if fields.get(f) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        user_address = fields["userAddress"]
        if not isinstance(user_address, str) or not user_address.strip():
            raise ValidationError("userAddress must be a non-empty string")

        transaction_hash = fields.get("transactionHash")
        if transaction_hash is not None and not isinstance(transaction_hash, str):
            raise ValidationError("transactionHash must be a string")

        block_number = fields.get("blockNumber")
        if block_number is not None:
            block_number = _non_negative_int(block_number, "blockNumber")

        return cls(
            evermark_id=str(_non_negative_int(fields["evermarkId"], "evermarkId")),
            user_address=user_address.strip(),
            amount=_non_negative_int(fields["amount"], "amount"),
            cycle=_non_negative_int(fields["cycle"], "cycle"),
            transaction_hash=transaction_hash or None,
            block_number=block_number,
        )
