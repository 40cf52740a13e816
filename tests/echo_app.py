"""
Тестовый сервер: echo + имитация IEX quote API.

Поднимается фикстурой из conftest.py, руками можно так:
    uvicorn tests.echo_app:app --host 127.0.0.1 --port 9001
    python -m iexc.main get 127.0.0.1 / --insecure -p 9001
"""
import asyncio

from starlette.applications import Starlette
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.requests import Request

API_TOKEN = "Tsk_test"

PRICES = {
    "AAPL": "187.44",
    "MSFT": "402.5",
    "BROKEN": "n/a",
}


async def homepage(request: Request) -> JSONResponse:
    """
    GET / — возвращает информацию о запросе.

    Удобно для проверки что клиент шлёт Host и Accept.
    """
    return JSONResponse({
        "message": "Hello from echo server",
        "path": str(request.url.path),
        "method": request.method,
        "headers": dict(request.headers),
    })


async def latest_price(request: Request) -> PlainTextResponse:
    """
    GET /stable/stock/{symbol}/quote/latestPrice?token=... — цена голым числом.

    Как настоящий IEX: без токена 401, неизвестный тикер 404.
    """
    if request.query_params.get("token") != API_TOKEN:
        return PlainTextResponse("Unauthorized", status_code=401)

    price = PRICES.get(request.path_params["symbol"])
    if price is None:
        return PlainTextResponse("Unknown symbol", status_code=404)
    return PlainTextResponse(price)


async def slow(request: Request) -> JSONResponse:
    """
    GET /slow?delay=5 — отвечает с задержкой.

    Для тестирования таймаутов.
    """
    delay = float(request.query_params.get("delay", 5))
    await asyncio.sleep(delay)
    return JSONResponse({"delayed": delay})


async def status(request: Request) -> JSONResponse:
    """
    GET /status?code=404 — возвращает указанный HTTP-код.

    Для тестирования обработки разных статусов.
    """
    code = int(request.query_params.get("code", 200))
    return JSONResponse({"status": code}, status_code=code)


async def large(request: Request) -> PlainTextResponse:
    """
    GET /large?size=1048576 — большой ответ.

    Тело больше одного TCP-сегмента, readexactly должен собрать его целиком.
    """
    size = int(request.query_params.get("size", 1024 * 1024))
    return PlainTextResponse("x" * size)


# маршруты
app = Starlette(
    routes=[
        Route("/", homepage),
        Route("/stable/stock/{symbol}/quote/latestPrice", latest_price),
        Route("/slow", slow),
        Route("/status", status),
        Route("/large", large),
    ]
)
