"""
Pydantic models for venue price payloads.

Venue responses are loosely shaped JSON; everything crossing into the
engine is validated here first.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from dexarb.core.errors import DataIntegrityError


class VenuePrice(BaseModel):
    """A validated token price from one venue."""

    venue: str
    token: str
    price: float = Field(gt=0, allow_inf_nan=False)

    model_config = {"frozen": True}


class PriceRequest(BaseModel):
    """A single token price request against a venue."""

    venue: str
    token: str
    address: str
    url: str


def extract_path(payload: Any, path: str) -> Any:
    """
    Walk a dotted path through nested dicts.

    Example:
        >>> extract_path({"data": {"price": "1.5"}}, "data.price")
        '1.5'

    Raises:
        KeyError: If any segment is missing or a non-dict is traversed.
    """
    node = payload
    for segment in path.split("."):
        if not isinstance(node, dict) or segment not in node:
            raise KeyError(segment)
        node = node[segment]
    return node


def parse_venue_price(venue: str, token: str, payload: Any, path: str) -> VenuePrice:
    """
    Validate a raw venue payload into a VenuePrice.

    Raises:
        DataIntegrityError: If the price is missing, malformed or non-positive.
    """
    try:
        raw = extract_path(payload, path)
    except KeyError as e:
        raise DataIntegrityError(
            f"{venue}: price field {path!r} missing for {token} (at {e})"
        ) from e

    try:
        return VenuePrice(venue=venue, token=token, price=raw)
    except ValidationError as e:
        raise DataIntegrityError(
            f"{venue}: invalid price {raw!r} for {token}: {e.errors()[0]['msg']}"
        ) from e
