"""
Утилиты для работы с таймаутами.

asyncio.wait_for() кидает asyncio.TimeoutError без деталей,
тут мы оборачиваем его с нормальным сообщением.

timeout=None — ждём сколько угодно, это поведение по умолчанию:
зависший сокет блокирует вызов, пока таймауты явно не включены в конфиге.
"""
import asyncio
from typing import TypeVar, Coroutine, Any, Optional

T = TypeVar("T")


async def with_timeout(
    coro: Coroutine[Any, Any, T],
    timeout: Optional[float],
    operation: str = ""
) -> T:
    """
    Обёртка над wait_for с понятной ошибкой.

    Вместо голого TimeoutError получаем:
    "Timeout during reading response after 15.0s"
    """
    if timeout is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        raise TimeoutError(f"Timeout during {operation} after {timeout}s")
