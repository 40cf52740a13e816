"""
Транспорт: TCP или TLS поверх TCP.

Отдаёт наверх один и тот же Stream (reader + writer) — парсеру
всё равно, зашифровано соединение или нет.

Реализует:
- проверку host/port до открытия сокета
- TLS с фиксированным набором корневых сертификатов (certifi)
- раздельные ошибки для DNS, коннекта и handshake
- автоматическое закрытие через контекстный менеджер
"""
import asyncio
import logging
import re
import socket
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import certifi

from iexc.errors import (
    ConnectError,
    HandshakeError,
    InvalidHostError,
    ResolutionError,
    StreamError,
)
from iexc.timeouts import with_timeout

logger = logging.getLogger("iexc")

MAX_PORT = 65535

# одна метка DNS-имени: буквы/цифры/дефис, без дефиса по краям
_LABEL_RE = re.compile(r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$")


def is_dns_name(host: str) -> bool:
    """
    Синтаксически валидное DNS-имя?

    IP-адреса тоже проходят (метки из цифр), но сертификат
    под них всё равно не совпадёт — это решит handshake.
    """
    if not host or len(host) > 253:
        return False
    # example.com. — корневая точка допустима
    labels = host[:-1].split(".") if host.endswith(".") else host.split(".")
    return all(_LABEL_RE.match(label) for label in labels)


def create_ssl_context(cafile: Optional[str] = None) -> ssl.SSLContext:
    """
    TLS-контекст с проверкой цепочки и hostname.

    Корневые сертификаты берём из certifi, а не из системы —
    набор фиксирован и одинаков на всех машинах.
    """
    context = ssl.create_default_context(cafile=cafile or certifi.where())
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    return context


@dataclass
class Stream:
    """
    Дуплексный поток поверх одного TCP-соединения.

    Принадлежит ровно одному get(), закрывается через close().
    """
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    host: str
    port: int
    secure: bool

    @property
    def address(self) -> str:
        """Для логов."""
        return f"{self.host}:{self.port}"

    async def send(self, data: bytes, timeout: Optional[float] = None) -> None:
        """write + drain, любые проблемы сокета -> StreamError."""
        try:
            self.writer.write(data)
            await with_timeout(self.writer.drain(), timeout, "writing request")
        except OSError as e:
            raise StreamError(f"Write to {self.address} failed: {e}") from e

    async def close(self) -> None:
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except OSError:
            pass  # уже закрыт или сломался — ок


async def connect(
    host: str,
    port: int,
    secure: bool,
    cafile: Optional[str] = None,
    timeout: Optional[float] = None,
) -> Stream:
    """
    Открывает соединение к host:port.

    secure=True — TLS handshake с SNI и проверкой сертификата под host.
    Если handshake не прошёл, сокет закрыт и Stream не возвращается.
    secure=False — голый TCP без шифрования.
    """
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port <= MAX_PORT:
        raise ValueError(f"Port must be in 1..{MAX_PORT}, got {port!r}")
    if secure and not is_dns_name(host):
        raise InvalidHostError(f"Not a valid DNS name for TLS: {host!r}")

    context = create_ssl_context(cafile) if secure else None
    logger.debug(f"Connecting to {host}:{port} ({'tls' if secure else 'plain'})")

    # сначала голый TCP, TLS поднимаем отдельным шагом — иначе обрыв
    # посреди handshake неотличим от отказа в коннекте
    try:
        reader, writer = await with_timeout(
            asyncio.open_connection(host, port),
            timeout,
            f"connecting to {host}:{port}"
        )
    # порядок важен: gaierror — подкласс OSError
    except socket.gaierror as e:
        raise ResolutionError(f"Cannot resolve {host}: {e}") from e
    except OSError as e:
        raise ConnectError(f"Cannot connect to {host}:{port}: {e}") from e

    stream = Stream(reader, writer, host, port, secure)
    if context is None:
        return stream

    try:
        await with_timeout(
            writer.start_tls(context, server_hostname=host),
            timeout,
            f"TLS handshake with {host}:{port}"
        )
    except (OSError, EOFError) as e:
        # SSLError, обрыв соединения и таймаут — всё это провал handshake
        await stream.close()
        reason = str(e) or type(e).__name__
        raise HandshakeError(f"TLS handshake with {host}:{port} failed: {reason}") from e

    return stream


@asynccontextmanager
async def open_stream(
    host: str,
    port: int,
    secure: bool,
    cafile: Optional[str] = None,
    timeout: Optional[float] = None,
) -> AsyncIterator[Stream]:
    """
    connect() + гарантированное закрытие.

    async with open_stream("example.com", 443, True) as stream:
        await stream.send(request)
    """
    stream = await connect(host, port, secure, cafile, timeout)
    try:
        yield stream
    finally:
        await stream.close()
