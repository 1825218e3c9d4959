"""
Async venue price client.

One client per venue, each with its own pooled aiohttp session and
orjson decoding.
"""

import asyncio
import logging

import aiohttp
import orjson

from dexarb.core.errors import DataIntegrityError, FetchFailure
from dexarb.core.types import split_pair
from dexarb.quotes.models import PriceRequest, VenuePrice, parse_venue_price


logger = logging.getLogger(__name__)


class VenueClient:
    """
    HTTP price client for one decentralized exchange.

    Token prices are fetched from ``price_url`` (with ``{token}`` replaced
    by the token address) and read from ``price_path`` in the JSON body.
    A pair's price is the ratio of its two token prices.
    """

    def __init__(
        self,
        name: str,
        price_url: str,
        price_path: str,
        token_addresses: dict[str, str] | None = None,
        timeout_s: float = 4.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the venue client.

        Args:
            name: Venue display name.
            price_url: URL template containing ``{token}``.
            price_path: Dotted path to the price in the response body.
            token_addresses: Token symbol to contract address.
            timeout_s: Per-request timeout.
            session: Optional shared session (not closed by this client).
        """
        self._name = name
        self._price_url = price_url
        self._price_path = price_path
        self._token_addresses = {k.upper(): v for k, v in (token_addresses or {}).items()}
        self._timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
            self._owns_session = True

        return self._session

    async def close(self) -> None:
        """Close the client session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def build_request(self, token: str) -> PriceRequest:
        """Build the price request for a token symbol or raw address."""
        address = self._token_addresses.get(token.upper(), token)
        return PriceRequest(
            venue=self._name,
            token=token,
            address=address,
            url=self._price_url.format(token=address),
        )

    async def fetch_token_price(self, token: str) -> VenuePrice:
        """
        Fetch one token's price.

        Raises:
            FetchFailure: On network errors, timeouts or non-200 responses.
            DataIntegrityError: On malformed or non-positive payloads.
        """
        request = self.build_request(token)
        session = await self._get_session()

        try:
            async with session.get(request.url) as response:
                body = await response.read()
                if response.status != 200:
                    raise FetchFailure(
                        f"{self._name}: HTTP {response.status} for {token}",
                        venue=self._name,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchFailure(
                f"{self._name}: request failed for {token}: {e!r}",
                venue=self._name,
            ) from e

        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise DataIntegrityError(f"{self._name}: invalid JSON for {token}") from e

        return parse_venue_price(self._name, token, payload, self._price_path)

    async def fetch_pair_price(self, pair: str) -> float:
        """
        Fetch a pair's price as BASE in QUOTE units.

        Raises:
            FetchFailure: If either token price is unavailable.
            DataIntegrityError: If either token payload is malformed.
        """
        base, quote = split_pair(pair)
        base_price, quote_price = await asyncio.gather(
            self.fetch_token_price(base),
            self.fetch_token_price(quote),
        )
        return base_price.price / quote_price.price

    @property
    def name(self) -> str:
        """Get venue name."""
        return self._name
