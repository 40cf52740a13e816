#!/usr/bin/env python3
"""
Точка входа CLI.

Запуск:
    python -m iexc.main get example.com /
    python -m iexc.main --config iexc.yaml quote AAPL
    iexc quote AAPL --api-token Tsk_xxx --sandbox
"""
import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from iexc.client import Client
from iexc.config import ClientConfig
from iexc.errors import ProtocolError, QuoteError, TransportError
from iexc.logger import generate_trace_id, log_request, set_trace_id, setup_logger
from iexc.quotes import QuoteClient, parse_price
from iexc.utils.http import Response

# 2 занят argparse под ошибки использования
EXIT_OK = 0
EXIT_INPUT = 1       # конфиг или аргументы не прошли проверку
EXIT_TRANSPORT = 3
EXIT_PROTOCOL = 4
EXIT_QUOTE = 5

logger = logging.getLogger("iexc")


def positive_ms(value: str) -> int:
    """argparse type: таймаут в мс, как и в YAML — только > 0."""
    try:
        ms = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if ms <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {ms}")
    return ms


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="iexc",
        description="Minimal HTTP/1.1 client and IEX Cloud quote lookup",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["debug", "info", "warning", "error"],
        help="Logging level (overrides config, default: info)",
    )
    parser.add_argument(
        "--connect-timeout",
        type=positive_ms,
        default=None,
        metavar="MS",
        help="Connect + TLS handshake timeout in ms (default: none)",
    )
    parser.add_argument(
        "--read-timeout",
        type=positive_ms,
        default=None,
        metavar="MS",
        help="Response read timeout in ms (default: none)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="Send a GET request and print the body")
    get.add_argument("domain", help="Host to connect to")
    get.add_argument("path", nargs="?", default="/", help="Request path")
    get.add_argument(
        "--insecure",
        action="store_true",
        help="Plain HTTP instead of TLS",
    )
    get.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Port (default: 443 for TLS, 80 for plain HTTP)",
    )
    get.add_argument(
        "-i", "--include",
        action="store_true",
        help="Print status line and headers before the body",
    )

    quote = commands.add_parser("quote", help="Print the latest price for a symbol")
    quote.add_argument("symbol", help="Ticker symbol, e.g. AAPL")
    quote.add_argument(
        "-a", "--api-token",
        type=str,
        default=None,
        help="IEX Cloud API token (overrides config)",
    )
    quote.add_argument(
        "--sandbox",
        action="store_true",
        help="Use the sandbox endpoint",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> ClientConfig:
    """Загружает конфигурацию из файла, поверх — флаги CLI."""
    if args.config and Path(args.config).exists():
        config = ClientConfig.from_yaml(args.config)
    else:
        config = ClientConfig.default()

    if args.log_level:
        config.log_level = args.log_level
    if args.connect_timeout is not None:
        config.timeouts = replace(config.timeouts, connect_ms=args.connect_timeout)
    if args.read_timeout is not None:
        config.timeouts = replace(config.timeouts, read_ms=args.read_timeout)

    if args.command == "quote":
        if args.api_token:
            config.quotes.api_token = args.api_token
        if args.sandbox:
            config.quotes.endpoint = "sandbox"
    return config


def format_response(response: Response, include_headers: bool) -> str:
    """Как curl: с -i сначала status line и заголовки."""
    if not include_headers:
        return response.body

    lines = [
        f"{response.protocol_version} {response.status_code} {response.status_message}"
    ]
    lines.extend(f"{name}: {value}" for name, value in response.headers)
    return "\n".join(lines) + "\n\n" + response.body


async def run_get(args: argparse.Namespace, config: ClientConfig) -> int:
    client = Client.from_config(
        args.domain, config, secure=not args.insecure, port=args.port
    )
    with log_request(logger, "GET", f"{args.domain}{args.path}") as log:
        response = await client.fetch(args.path)
        log.status = response.status_code
        log.bytes_received = response.content_length

    print(format_response(response, args.include))
    return EXIT_OK


async def run_quote(args: argparse.Namespace, config: ClientConfig) -> int:
    if not config.quotes.api_token:
        logger.error("No API token given (use --api-token or quotes.api_token in config)")
        return EXIT_QUOTE

    quotes = QuoteClient.from_config(config)
    with log_request(logger, "QUOTE", args.symbol.upper()) as log:
        # не fetch_latest_price: статус и размер ответа нужны для лога
        response = await quotes.fetch_quote(args.symbol)
        log.status = response.status_code
        log.bytes_received = response.content_length
        price = parse_price(response)

    print(price)
    return EXIT_OK


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    # конфиг читаем до логгера — уровень может прийти из файла
    try:
        config = load_config(args)
    except (OSError, ValueError) as e:
        setup_logger(args.log_level or "info")
        logger.error(f"Cannot load config: {e}")
        return EXIT_INPUT

    setup_logger(config.log_level)
    set_trace_id(generate_trace_id())
    logger.debug(f"Config loaded: {config}")

    try:
        if args.command == "quote":
            return await run_quote(args, config)
        return await run_get(args, config)
    except TransportError as e:
        logger.error(f"Transport error: {e}")
        return EXIT_TRANSPORT
    except ProtocolError as e:
        logger.error(f"Protocol error: {e}")
        return EXIT_PROTOCOL
    except QuoteError as e:
        logger.error(f"Quote error: {e}")
        return EXIT_QUOTE
    except ValueError as e:
        # кривой path/port/symbol — ошибка ввода
        logger.error(f"Invalid input: {e}")
        return EXIT_INPUT


def run() -> None:
    """Entry point для console script."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
