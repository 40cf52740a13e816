"""
Фикстуры: живой echo-сервер на uvicorn и сокет-сервер с заготовленным ответом.
"""
import socket
import ssl
import threading
import time
from typing import Optional

import pytest
import trustme
import uvicorn

from echo_app import app


def free_port() -> int:
    """Порт, который только что был свободен."""
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class CannedServer:
    """
    Отдаёт заранее заготовленные байты на первое соединение.

    greet=False — сначала дочитываем запрос до пустой строки, потом отвечаем.
    greet=True — отвечаем сразу после accept (для проверки TLS handshake
    против сервера, который TLS не умеет).
    hangup=True — читаем первый пакет (ClientHello) и рвём соединение.
    ssl_context — серверный TLS поверх сокета.
    """

    def __init__(
        self,
        payload: bytes = b"",
        greet: bool = False,
        hangup: bool = False,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.payload = payload
        self.greet = greet
        self.hangup = hangup
        self.ssl_context = ssl_context
        self.request = b""
        self._sock = socket.socket()
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(1)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self) -> None:
        conn, _ = self._sock.accept()
        try:
            if self.hangup:
                conn.recv(4096)
                return
            if self.ssl_context is not None:
                conn = self.ssl_context.wrap_socket(conn, server_side=True)
            if self.greet:
                conn.sendall(self.payload)
            while b"\r\n\r\n" not in self.request:
                chunk = conn.recv(4096)
                if not chunk:
                    return
                self.request += chunk
            if not self.greet:
                conn.sendall(self.payload)
        except OSError:
            pass  # клиент отвалился или handshake не прошёл — для тестов это ок
        finally:
            conn.close()

    def __enter__(self) -> "CannedServer":
        self._thread.start()
        return self

    def __exit__(self, *exc) -> None:
        self._thread.join(timeout=5)
        self._sock.close()


@pytest.fixture
def canned_server():
    """Фабрика: with canned_server(b"HTTP/1.1 ...") as server: ..."""
    return CannedServer


@pytest.fixture(scope="session")
def echo_port():
    """Поднимает tests/echo_app.py в фоновом потоке на весь прогон."""
    port = free_port()
    server = uvicorn.Server(
        uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning")
    )
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline:
            raise RuntimeError("echo server did not start")
        time.sleep(0.05)

    yield port

    server.should_exit = True
    thread.join(timeout=5)


@pytest.fixture(scope="session")
def tls_ca():
    """Свой CA: сертификаты под localhost и чужое имя."""
    return trustme.CA()


@pytest.fixture
def ca_file(tls_ca, tmp_path):
    """PEM корневого сертификата — для Client(cafile=...)."""
    path = tmp_path / "ca.pem"
    tls_ca.cert_pem.write_to_path(str(path))
    return str(path)


@pytest.fixture
def server_tls(tls_ca):
    """Фабрика серверного TLS-контекста с сертификатом под заданные имена."""
    def make(*names: str) -> ssl.SSLContext:
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        tls_ca.issue_cert(*names).configure_cert(context)
        return context
    return make
