"""
Конфигурация клиента.

Все настройки — dataclasses. Файл конфига необязателен,
флаги CLI перекрывают значения из него.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import yaml

ENDPOINTS = ("production", "sandbox")
LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass(frozen=True)
class TimeoutConfig:
    """
    Таймауты для различных операций.

    Храним в миллисекундах (так удобнее в конфиге),
    но properties возвращают секунды для asyncio.wait_for().
    None — без ограничения, по умолчанию все таймауты выключены.
    """
    connect_ms: Optional[int] = None    # коннект + TLS handshake
    read_ms: Optional[int] = None       # чтение всего ответа
    write_ms: Optional[int] = None      # отправка запроса
    total_ms: Optional[int] = None      # весь get() целиком

    @staticmethod
    def _seconds(ms: Optional[int]) -> Optional[float]:
        return None if ms is None else ms / 1000

    @property
    def connect(self) -> Optional[float]:
        return self._seconds(self.connect_ms)

    @property
    def read(self) -> Optional[float]:
        return self._seconds(self.read_ms)

    @property
    def write(self) -> Optional[float]:
        return self._seconds(self.write_ms)

    @property
    def total(self) -> Optional[float]:
        return self._seconds(self.total_ms)


@dataclass
class QuoteConfig:
    """Доступ к IEX Cloud: какой endpoint и с каким токеном."""
    endpoint: str = "production"
    # токен не должен попасть в логи через repr конфига
    api_token: Optional[str] = field(default=None, repr=False)


@dataclass
class ClientConfig:
    """
    Корневой конфиг приложения.

    Можно создать через from_yaml() или default().
    """
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    strict_content_length: bool = True
    cafile: Optional[str] = None        # свой bundle вместо certifi
    quotes: QuoteConfig = field(default_factory=QuoteConfig)
    log_level: str = "info"

    @classmethod
    def from_yaml(cls, path: str) -> "ClientConfig":
        """
        Парсит YAML-конфиг.

        timeouts: {connect_ms: 5000, read_ms: 15000}
        http: {strict_content_length: true, cafile: null}
        quotes: {endpoint: sandbox, api_token: Tsk_xxx}
        logging: {level: debug}
        """
        with open(path, "r") as f:
            # пустой файл — safe_load вернёт None
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config root must be a mapping: {path}")

        timeouts_data = _section(data, "timeouts")
        timeouts = TimeoutConfig(
            connect_ms=_optional_ms(timeouts_data, "connect_ms"),
            read_ms=_optional_ms(timeouts_data, "read_ms"),
            write_ms=_optional_ms(timeouts_data, "write_ms"),
            total_ms=_optional_ms(timeouts_data, "total_ms"),
        )

        http_data = _section(data, "http")
        quotes_data = _section(data, "quotes")

        endpoint = str(quotes_data.get("endpoint", "production")).lower()
        if endpoint not in ENDPOINTS:
            raise ValueError(f"Unknown endpoint {endpoint!r}, expected one of {ENDPOINTS}")

        log_level = str(_section(data, "logging").get("level", "info")).lower()
        if log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level {log_level!r}, expected one of {LOG_LEVELS}")

        return cls(
            timeouts=timeouts,
            strict_content_length=bool(http_data.get("strict_content_length", True)),
            cafile=http_data.get("cafile"),
            quotes=QuoteConfig(
                endpoint=endpoint,
                api_token=quotes_data.get("api_token"),
            ),
            log_level=log_level,
        )

    @classmethod
    def default(cls) -> "ClientConfig":
        """Дефолтный конфиг: без таймаутов, production endpoint."""
        return cls()


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section {name!r} must be a mapping")
    return section


def _optional_ms(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool — подкласс int, но "connect_ms: true" явно ошибка
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer, got {value!r}")
    return value
