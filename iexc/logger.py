"""
Настройка логирования с поддержкой trace_id.

Каждая команда CLI получает уникальный trace_id, который автоматически
добавляется во все логи через ContextVar + Filter.

Библиотечные модули пишут только debug в логгер "iexc" и хэндлеров
не вешают — пока setup_logger() не вызван, клиент молчит.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

# trace_id хранится в contextvars — доступен из любой корутины
# без явной передачи
trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def generate_trace_id() -> str:
    """
    Генерирует короткий trace_id.

    Берём первые 8 символов UUID — достаточно для отладки,
    не захламляет логи.
    """
    return uuid.uuid4().hex[:8]


def get_trace_id() -> Optional[str]:
    """Текущий trace_id или None."""
    return trace_id_var.get()


def set_trace_id(trace_id: str) -> None:
    """Устанавливает trace_id для текущего контекста."""
    trace_id_var.set(trace_id)


class TraceIdFilter(logging.Filter):
    """
    Добавляет trace_id в каждую запись лога.

    Если trace_id не установлен — ставит "-".
    """
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = trace_id_var.get() or "-"
        return True


@dataclass
class RequestLog:
    """
    Данные для лога запроса.

    Заполняется по ходу обработки и выводится в finally.
    trace_id сюда не кладём — его подставляет TraceIdFilter.
    """
    method: str
    target: str
    status: int
    duration_ms: float
    bytes_received: int = 0
    error: str = ""


def setup_logger(level: str = "info") -> logging.Logger:
    """
    Настраивает логгер "iexc".

    Формат: 2025-01-15 12:30:45 | INFO | [abc12345] message
    """
    logger = logging.getLogger("iexc")
    logger.setLevel(getattr(logging, level.upper()))

    # чистим старые хэндлеры если есть (при повторном вызове)
    logger.handlers.clear()

    handler = logging.StreamHandler()

    # trace_id в квадратных скобках перед сообщением
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | [%(trace_id)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    handler.setFormatter(formatter)
    handler.addFilter(TraceIdFilter())
    logger.addHandler(handler)
    return logger


@contextmanager
def log_request(logger: logging.Logger, method: str, target: str) -> Iterator[RequestLog]:
    """
    Контекст для измерения времени запроса.

    Использование:
        with log_request(logger, "GET", "example.com/") as log:
            log.status = 200
        # автоматически залогирует с duration

    Исключение внутри блока пишется в error и пробрасывается дальше,
    а сама строка лога уходит уровнем WARNING.
    """
    start = time.perf_counter()
    log = RequestLog(
        method=method,
        target=target,
        status=0,
        duration_ms=0
    )

    try:
        yield log
    except Exception as e:
        log.error = log.error or f"{type(e).__name__}: {e}"
        raise
    finally:
        log.duration_ms = (time.perf_counter() - start) * 1000
        suffix = f" | {log.error}" if log.error else ""
        logger.log(
            logging.WARNING if log.error else logging.INFO,
            f"{log.method} {log.target} | {log.status} | "
            f"{log.bytes_received}B | {log.duration_ms:.2f}ms{suffix}"
        )
