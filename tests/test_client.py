import asyncio
import dataclasses
import json

import pytest

from conftest import free_port
from iexc.client import Client
from iexc.config import ClientConfig, TimeoutConfig
from iexc.errors import (
    ConnectError,
    HandshakeError,
    MalformedHeaderLine,
    MalformedStatusLine,
    StreamError,
    TruncatedBody,
)


def test_default_ports():
    assert Client("example.com").port == 443
    assert Client("example.com").secure
    assert Client.insecure("example.com").port == 80
    assert Client("example.com", secure=False).port == 80
    assert Client("example.com", port=8443).port == 8443


def test_client_is_immutable():
    client = Client("example.com")

    with pytest.raises(dataclasses.FrozenInstanceError):
        client.domain = "other.com"


def test_from_config_copies_http_settings():
    config = ClientConfig(
        timeouts=TimeoutConfig(connect_ms=500),
        strict_content_length=False,
        cafile="/tmp/roots.pem",
    )
    client = Client.from_config("example.com", config, secure=False, port=8080)

    assert client.port == 8080
    assert not client.secure
    assert client.timeouts.connect == 0.5
    assert not client.strict_content_length
    assert client.cafile == "/tmp/roots.pem"


def test_request_on_the_wire(canned_server):
    with canned_server(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nhi") as server:
        resp = Client.insecure("127.0.0.1", server.port).get("/x")

    assert server.request == b"GET /x HTTP/1.1\r\nHost: 127.0.0.1\r\nAccept: */*\r\n\r\n"
    assert resp.status_code == 200
    assert resp.body == "hi"


def test_get_reads_only_content_length(canned_server):
    payload = b"HTTP/1.1 200 OK\r\nContent-Length: 5\r\n\r\nhello, and then some"
    with canned_server(payload) as server:
        resp = Client.insecure("127.0.0.1", server.port).get("/")

    assert resp.body == "hello"


@pytest.mark.parametrize("payload, error", [
    (b"garbage\r\n\r\n", MalformedStatusLine),
    (b"HTTP/1.1 200 OK\r\nno separator\r\n\r\n", MalformedHeaderLine),
    (b"HTTP/1.1 200 OK\r\nContent-Length: 50\r\n\r\nshort", TruncatedBody),
])
def test_parse_errors_propagate(canned_server, payload, error):
    with canned_server(payload) as server:
        with pytest.raises(error):
            Client.insecure("127.0.0.1", server.port).get("/")


def test_invalid_path_fails_before_connecting():
    # на порту никто не слушает — но до коннекта дело не дойдёт
    client = Client.insecure("127.0.0.1", free_port())

    with pytest.raises(ValueError):
        client.get("/with space")


def test_refused_connection():
    with pytest.raises(ConnectError):
        Client.insecure("127.0.0.1", free_port()).get("/")


def test_get_against_live_server(echo_port):
    resp = Client.insecure("127.0.0.1", echo_port).get("/")

    assert resp.status_code == 200
    assert resp.header("content-type") == "application/json"
    echo = json.loads(resp.body)
    assert echo["path"] == "/"
    assert echo["method"] == "GET"
    assert echo["headers"]["host"] == "127.0.0.1"
    assert echo["headers"]["accept"] == "*/*"


def test_status_code_from_live_server(echo_port):
    resp = Client.insecure("127.0.0.1", echo_port).get("/status?code=404")

    assert resp.status_code == 404
    assert resp.status_message == "Not Found"
    assert not resp.ok


def test_large_body_from_live_server(echo_port):
    resp = Client.insecure("127.0.0.1", echo_port).get("/large?size=200000")

    assert resp.content_length == 200000
    assert resp.body == "x" * 200000


def test_read_timeout(echo_port):
    client = Client.insecure(
        "127.0.0.1", echo_port, timeouts=TimeoutConfig(read_ms=100)
    )

    with pytest.raises(StreamError):
        client.get("/slow?delay=1")


def test_total_timeout(echo_port):
    client = Client.insecure(
        "127.0.0.1", echo_port, timeouts=TimeoutConfig(total_ms=100)
    )

    with pytest.raises(StreamError):
        client.get("/slow?delay=1")


def test_fetch_inside_running_loop(echo_port):
    async def scenario():
        client = Client.insecure("127.0.0.1", echo_port)
        return await asyncio.gather(client.fetch("/"), client.fetch("/status?code=201"))

    first, second = asyncio.run(scenario())

    assert first.status_code == 200
    assert second.status_code == 201


def test_get_over_tls(canned_server, server_tls, ca_file):
    payload = b"HTTP/1.1 200 OK\r\nContent-Length: 6\r\n\r\nsecret"
    with canned_server(payload, ssl_context=server_tls("localhost")) as server:
        client = Client("localhost", port=server.port, cafile=ca_file)
        resp = client.get("/tls")

    assert client.secure
    assert server.request == b"GET /tls HTTP/1.1\r\nHost: localhost\r\nAccept: */*\r\n\r\n"
    assert resp.body == "secret"


def test_get_over_tls_with_wrong_certificate(canned_server, server_tls, ca_file):
    with canned_server(b"", ssl_context=server_tls("other.example")) as server:
        with pytest.raises(HandshakeError):
            Client("localhost", port=server.port, cafile=ca_file).get("/")
