"""
Иерархия ошибок клиента.

Две ветки, чтобы вызывающий код мог отличить сетевые проблемы
от кривого ответа сервера:
- TransportError — DNS, коннект, TLS, обрыв потока
- ProtocolError — ответ не похож на HTTP/1.1
"""


class HttpError(Exception):
    """Базовая ошибка всех операций клиента."""


class TransportError(HttpError):
    """Не удалось установить соединение или обменяться байтами."""


class InvalidHostError(TransportError):
    """Хост не является валидным DNS-именем (нужно для TLS)."""


class ResolutionError(TransportError):
    """DNS не смог разрезолвить хост."""


class ConnectError(TransportError):
    """TCP-соединение отклонено, недоступно или не успело за таймаут."""


class HandshakeError(TransportError):
    """TLS handshake не прошёл: сертификат, hostname, версия протокола."""


class StreamError(TransportError):
    """Ошибка чтения/записи уже открытого соединения."""


class ProtocolError(HttpError):
    """Ответ сервера не удалось распарсить."""


class MalformedStatusLine(ProtocolError):
    """Status line не состоит из версии, кода и сообщения."""


class MalformedHeaderLine(ProtocolError):
    """Строка заголовка без ':' или поток закончился посреди заголовков."""


class TruncatedBody(ProtocolError):
    """Соединение закрылось раньше, чем пришло Content-Length байт."""

    def __init__(self, expected: int, received: int):
        super().__init__(
            f"Body truncated: expected {expected} bytes, got {received}"
        )
        self.expected = expected
        self.received = received


class NonNumericField(ProtocolError):
    """Числовое поле (status code, content-length) не парсится."""

    def __init__(self, field: str, value: str):
        super().__init__(f"Non-numeric {field}: {value!r}")
        self.field = field
        self.value = value


class QuoteError(Exception):
    """Ответ quote API не содержит цену."""
