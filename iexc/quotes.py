"""
Обёртка над IEX Cloud quote API.

Вся логика — собрать path с токеном и распарсить тело как float:
GET /stable/stock/AAPL/quote/latestPrice?token=... -> 187.44
"""
import math
from enum import Enum
from typing import Optional
from urllib.parse import quote, urlencode

from iexc.client import Client
from iexc.config import ClientConfig
from iexc.errors import QuoteError
from iexc.utils.http import Response


class Endpoint(Enum):
    """Домены IEX Cloud."""
    PRODUCTION = "cloud.iexapis.com"
    SANDBOX = "sandbox.iexapis.com"

    @property
    def domain(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "Endpoint":
        """"sandbox" -> Endpoint.SANDBOX"""
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown endpoint: {name!r}")


class QuoteClient:
    """
    Клиент quote API.

    HTTP-клиент можно подсунуть свой (тесты, локальный стенд),
    иначе создаётся TLS-клиент на домен endpoint'а.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        api_token: str,
        http_client: Optional[Client] = None,
    ):
        if not api_token:
            raise ValueError("API token is required")
        self.endpoint = endpoint
        self._api_token = api_token
        self.http_client = http_client or Client(endpoint.domain)

    @classmethod
    def from_config(cls, config: ClientConfig) -> "QuoteClient":
        endpoint = Endpoint.from_name(config.quotes.endpoint)
        return cls(
            endpoint,
            config.quotes.api_token,
            Client.from_config(endpoint.domain, config),
        )

    def price_path(self, symbol: str) -> str:
        """/stable/stock/<SYMBOL>/quote/latestPrice?token=<token>"""
        symbol = symbol.strip().upper()
        if not symbol:
            raise ValueError("Symbol must not be empty")
        query = urlencode({"token": self._api_token})
        return f"/stable/stock/{quote(symbol, safe='')}/quote/latestPrice?{query}"

    def latest_price(self, symbol: str) -> float:
        """Последняя цена, синхронно."""
        return parse_price(self.http_client.get(self.price_path(symbol)))

    async def fetch_quote(self, symbol: str) -> Response:
        """Сырой ответ quote API — когда кроме цены нужен статус."""
        return await self.http_client.fetch(self.price_path(symbol))

    async def fetch_latest_price(self, symbol: str) -> float:
        return parse_price(await self.fetch_quote(symbol))


def parse_price(response: Response) -> float:
    """Тело ответа -> float, иначе QuoteError со статусом."""
    text = response.body.strip()
    try:
        price = float(text)
    except ValueError:
        price = math.nan
    # nan и inf float() принимает, но ценой они не являются
    if not math.isfinite(price):
        raise QuoteError(
            f"Expected a price, got {response.status_code} "
            f"{response.status_message}: {text[:80]!r}"
        )
    return price
