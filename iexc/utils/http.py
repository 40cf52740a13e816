"""
Минимальный HTTP/1.1 парсер ответа.

Только то что нужно одноразовому GET-клиенту:
- status line
- headers
- тело ровно по Content-Length

Chunked, keep-alive и редиректы не поддерживаются — одно соединение
на один запрос.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import asyncio

from iexc.errors import (
    MalformedHeaderLine,
    MalformedStatusLine,
    NonNumericField,
    TruncatedBody,
)

# максимальный код, который помещается в u16
MAX_STATUS_CODE = 0xFFFF

Headers = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class Response:
    """
    Распарсенный HTTP-ответ.

    Headers — кортеж пар в порядке появления, имена и значения в lowercase.
    Дубликаты не склеиваются.
    """
    protocol_version: str   # HTTP/1.1
    status_code: int        # 200
    status_message: str     # OK, может содержать пробелы
    headers: Headers
    content: bytes          # сырое тело, ровно Content-Length байт
    body: str               # то же тело, декодированное как UTF-8

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Первое значение заголовка или default."""
        name = name.lower()
        for key, value in self.headers:
            if key == name:
                return value
        return default

    def header_values(self, name: str) -> Tuple[str, ...]:
        """Все значения заголовка в порядке появления."""
        name = name.lower()
        return tuple(value for key, value in self.headers if key == name)

    @property
    def content_length(self) -> int:
        return len(self.content)

    @property
    def ok(self) -> bool:
        """2xx?"""
        return 200 <= self.status_code < 300


def format_request(domain: str, path: str) -> bytes:
    """
    Собирает GET-запрос.

    Формат HTTP/1.1:
    GET /path HTTP/1.1\\r\\n
    Host: example.com\\r\\n
    Accept: */*\\r\\n
    \\r\\n
    """
    # пробел или CRLF в path сломают request line
    if not path or any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in path):
        raise ValueError(f"Invalid request path: {path!r}")
    if not domain or any(ch.isspace() for ch in domain):
        raise ValueError(f"Invalid domain: {domain!r}")

    request = (
        f"GET {path} HTTP/1.1\r\n"
        f"Host: {domain}\r\n"
        f"Accept: */*\r\n"
        f"\r\n"
    )
    try:
        return request.encode("ascii")
    except UnicodeEncodeError:
        raise ValueError(f"Request must be ASCII: {domain!r} {path!r}")


def _strip_eol(line: bytes) -> bytes:
    """Убирает \\r\\n или голый \\n в конце строки."""
    if line.endswith(b"\r\n"):
        return line[:-2]
    if line.endswith(b"\n"):
        return line[:-1]
    return line


def _parse_uint(field: str, value: str, limit: Optional[int] = None) -> int:
    # isdigit() пропускает '²' и прочие unicode-цифры, поэтому ещё isascii()
    if not value or not (value.isascii() and value.isdigit()):
        raise NonNumericField(field, value)
    number = int(value)
    if limit is not None and number > limit:
        raise NonNumericField(field, value)
    return number


def parse_status_line(line: bytes) -> Tuple[str, int, str]:
    """
    HTTP/1.1 301 Moved to some nice place -> ("HTTP/1.1", 301, "Moved to some nice place")

    Сообщение — весь остаток строки после кода, может быть пустым.
    """
    if not line:
        raise MalformedStatusLine("Empty response: no status line")

    # latin-1 — стандартная кодировка для HTTP/1.x headers
    text = _strip_eol(line).decode("latin-1")
    parts = text.split(" ", 2)
    if len(parts) != 3:
        raise MalformedStatusLine(f"Malformed status line: {text!r}")

    version, code, message = (part.strip() for part in parts)
    if not version:
        raise MalformedStatusLine(f"Missing protocol version: {text!r}")

    return version, _parse_uint("status code", code, MAX_STATUS_CODE), message


def parse_header(line: bytes) -> Tuple[str, str]:
    """Content-Length: 12\\r\\n -> ("content-length", "12")"""
    name, sep, value = _strip_eol(line).decode("latin-1").partition(":")
    if not sep:
        raise MalformedHeaderLine(f"Malformed header line: {line!r}")
    return name.strip().lower(), value.strip().lower()


def find_content_length(headers: Headers, strict: bool = True) -> int:
    """
    Длина тела из первого content-length.

    Нет заголовка — 0. Мусор в значении — ошибка в strict-режиме,
    иначе тоже 0.
    """
    for name, value in headers:
        if name == "content-length":
            try:
                return _parse_uint("content-length", value)
            except NonNumericField:
                if strict:
                    raise
                return 0
    return 0


async def _read_line(reader: asyncio.StreamReader, error: type) -> bytes:
    # readline() кидает ValueError если строка длиннее лимита reader'а
    try:
        return await reader.readline()
    except ValueError as e:
        raise error(f"Line too long: {e}")


async def parse_response(
    reader: asyncio.StreamReader,
    strict_content_length: bool = True,
) -> Response:
    """
    Парсит ответ из потока, который стоит на начале status line.

    Формат HTTP/1.1:
    HTTP/1.1 200 OK\\r\\n
    Content-Length: 12\\r\\n
    \\r\\n
    Hello world!

    Читаем ровно Content-Length байт тела, остальное остаётся в reader'е.
    """
    # первая строка: HTTP/1.1 200 OK
    line = await _read_line(reader, MalformedStatusLine)
    version, status_code, status_message = parse_status_line(line)

    # читаем заголовки до пустой строки
    headers = []
    while True:
        line = await _read_line(reader, MalformedHeaderLine)
        if line in (b"\r\n", b"\n"):
            break
        if not line:
            raise MalformedHeaderLine("Stream ended before end of headers")
        headers.append(parse_header(line))

    content_length = find_content_length(tuple(headers), strict_content_length)

    try:
        content = await reader.readexactly(content_length)
    except asyncio.IncompleteReadError as e:
        raise TruncatedBody(content_length, len(e.partial))

    return Response(
        protocol_version=version,
        status_code=status_code,
        status_message=status_message,
        headers=tuple(headers),
        content=content,
        body=content.decode("utf-8", errors="replace"),
    )


async def _parse_buffer(data: bytes, strict_content_length: bool) -> Response:
    # StreamReader создаём внутри loop'а — вне его он ругается
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return await parse_response(reader, strict_content_length)


def parse_bytes(data: bytes, strict_content_length: bool = True) -> Response:
    """Синхронный парсинг ответа, уже целиком лежащего в памяти."""
    return asyncio.run(_parse_buffer(data, strict_content_length))
