"""
HTTP-клиент: один GET — одно соединение.

Поток данных:
open_stream -> запрос -> parse_response -> закрытие соединения

Никакого пула и keep-alive: каждый get() сам открывает
и сам закрывает свой транспорт.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from iexc.config import ClientConfig, TimeoutConfig
from iexc.errors import StreamError
from iexc.timeouts import with_timeout
from iexc.transport import open_stream
from iexc.utils.http import Response, format_request, parse_response

logger = logging.getLogger("iexc")

HTTPS_PORT = 443
HTTP_PORT = 80


@dataclass(frozen=True)
class Client:
    """
    Клиент, привязанный к одному домену.

    Иммутабельный — можно делить между потоками, если каждый вызов
    get() идёт в своём потоке со своим event loop'ом.
    """
    domain: str
    port: Optional[int] = None      # None -> 443 для TLS, 80 для plain
    secure: bool = True
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    strict_content_length: bool = True
    cafile: Optional[str] = None

    def __post_init__(self):
        if self.port is None:
            # frozen dataclass — обходим через object.__setattr__
            object.__setattr__(self, "port", HTTPS_PORT if self.secure else HTTP_PORT)

    @classmethod
    def insecure(cls, domain: str, port: int = HTTP_PORT, **kwargs) -> "Client":
        """Plain HTTP без TLS."""
        return cls(domain, port=port, secure=False, **kwargs)

    @classmethod
    def from_config(
        cls,
        domain: str,
        config: ClientConfig,
        secure: bool = True,
        port: Optional[int] = None,
    ) -> "Client":
        return cls(
            domain,
            port=port,
            secure=secure,
            timeouts=config.timeouts,
            strict_content_length=config.strict_content_length,
            cafile=config.cafile,
        )

    def get(self, path: str) -> Response:
        """
        Синхронный GET.

        Блокирует поток до конца обмена. Внутри уже запущенного
        event loop'а используйте fetch().
        """
        return asyncio.run(self.fetch(path))

    async def fetch(self, path: str) -> Response:
        """GET как корутина."""
        # кривой path отбиваем до открытия сокета
        request = format_request(self.domain, path)
        try:
            return await with_timeout(
                self._exchange(request, path),
                self.timeouts.total,
                f"GET {path}"
            )
        except TimeoutError as e:
            # сюда доходит только общий таймаут, остальные уже обёрнуты
            raise StreamError(str(e)) from e

    async def _exchange(self, request: bytes, path: str) -> Response:
        async with open_stream(
            self.domain,
            self.port,
            self.secure,
            cafile=self.cafile,
            timeout=self.timeouts.connect,
        ) as stream:
            logger.debug(f"GET {path} -> {stream.address}")
            await stream.send(request, self.timeouts.write)

            try:
                response = await with_timeout(
                    parse_response(stream.reader, self.strict_content_length),
                    self.timeouts.read,
                    "reading response"
                )
            except OSError as e:
                raise StreamError(f"Read from {stream.address} failed: {e}") from e

            logger.debug(
                f"{stream.address}{path} <- {response.status_code} "
                f"{response.status_message} ({response.content_length}B)"
            )
            return response
