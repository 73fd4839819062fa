import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import requests

from rag_pipeline.errors import (
    BadModelResponse,
    InvalidResponse,
    ServiceUnavailable,
    ServiceUnreachable,
    UpstreamInvalidResponse,
    UpstreamUnavailable,
)
from rag_pipeline.ollama_client import OllamaClient

BASE_URL = "http://ollama.test:11434"


def _response(status=200, payload=None):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.reason = "OK" if resp.ok else "Internal Server Error"
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    body = b"not json" if payload is None else json.dumps(payload).encode()
    resp.iter_content.side_effect = lambda chunk_size=1: (body[i:i + chunk_size] for i in range(0, len(body), chunk_size))
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return OllamaClient(BASE_URL + "/", session=session, probe_timeout=5.0)


class TestEmbed:
    def test_returns_vector_and_posts_model_and_prompt(self, client, session):
        session.post.return_value = _response(payload={"embedding": [0.1, 0.2, 0.3]})

        assert client.embed("nomic-embed-text", "hello") == [0.1, 0.2, 0.3]
        session.post.assert_called_once_with(
            f"{BASE_URL}/api/embeddings", json={"model": "nomic-embed-text", "prompt": "hello"}
        )

    def test_connection_error_is_service_unavailable(self, client, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ServiceUnavailable) as info:
            client.embed("nomic-embed-text", "hello")
        assert isinstance(info.value, UpstreamUnavailable)

    def test_error_status_is_invalid_response(self, client, session):
        session.post.return_value = _response(status=500, payload={"error": "boom"})

        with pytest.raises(InvalidResponse, match="500"):
            client.embed("nomic-embed-text", "hello")

    @pytest.mark.parametrize("payload", [{}, {"embedding": []}, {"embedding": "x"}, {"embedding": ["a", "b"]}])
    def test_malformed_embedding_is_invalid_response(self, client, session, payload):
        session.post.return_value = _response(payload=payload)

        with pytest.raises(InvalidResponse) as info:
            client.embed("nomic-embed-text", "hello")
        assert isinstance(info.value, UpstreamInvalidResponse)

    def test_non_json_body_is_invalid_response(self, client, session):
        session.post.return_value = _response(payload=None)

        with pytest.raises(InvalidResponse):
            client.embed("nomic-embed-text", "hello")


class TestGenerate:
    def test_returns_stripped_text_without_streaming(self, client, session):
        session.post.return_value = _response(payload={"response": "  The answer.\n"})

        assert client.generate("gemma3:1b", "prompt") == "The answer."
        _, kwargs = session.post.call_args
        assert kwargs["json"] == {"model": "gemma3:1b", "prompt": "prompt", "stream": False}
        assert "timeout" not in kwargs

    def test_connection_error_is_service_unreachable(self, client, session):
        session.post.side_effect = requests.Timeout("slow")

        with pytest.raises(ServiceUnreachable):
            client.generate("gemma3:1b", "prompt")

    def test_error_status_is_bad_model_response(self, client, session):
        session.post.return_value = _response(status=404, payload={"error": "model not found"})

        with pytest.raises(BadModelResponse, match="404"):
            client.generate("missing-model", "prompt")

    def test_non_json_body_is_reported_as_such(self, client, session):
        session.post.return_value = _response(payload=None)

        with pytest.raises(BadModelResponse, match="non-JSON"):
            client.generate("gemma3:1b", "prompt")

    @pytest.mark.parametrize("payload", [{}, {"response": ""}, {"response": "   "}, {"response": None}])
    def test_empty_response_is_bad_model_response(self, client, session, payload):
        session.post.return_value = _response(payload=payload)

        with pytest.raises(BadModelResponse):
            client.generate("gemma3:1b", "prompt")


class TestAvailability:
    def test_available_lists_models_with_bounded_timeout(self, client, session):
        session.get.return_value = _response(payload={"models": [{"name": "gemma3:1b"}, {"name": "nomic-embed-text"}]})

        status = client.check_availability()

        assert status.available is True
        assert status.models == ["gemma3:1b", "nomic-embed-text"]
        session.get.assert_called_once_with(f"{BASE_URL}/api/tags", timeout=5.0, stream=True)

    def test_unreachable_server_reports_unavailable(self, client, session):
        session.get.side_effect = requests.ConnectionError("refused")

        status = client.check_availability()

        assert status.available is False
        assert status.models == []

    def test_error_status_reports_unavailable(self, client, session):
        resp = _response(status=500, payload={})
        resp.raise_for_status.side_effect = requests.HTTPError("500")
        session.get.return_value = resp

        assert client.check_availability().available is False

    def test_non_json_tags_reports_unavailable(self, client, session):
        session.get.return_value = _response(payload=None)

        assert client.check_availability().available is False


class _TrickleHandler(BaseHTTPRequestHandler):
    """Sends the headers at once, then the body one byte at a time."""

    body = json.dumps({"models": [{"name": "gemma3:1b"}]}).encode()
    delay = 0.0

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(self.body)))
        self.end_headers()
        try:
            for byte in self.body:
                self.wfile.write(bytes([byte]))
                self.wfile.flush()
                time.sleep(self.delay)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, *args):
        pass


@pytest.fixture
def tags_server():
    servers = []

    def start(delay):
        handler = type("Handler", (_TrickleHandler,), {"delay": delay})
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
        server.daemon_threads = True
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


def _direct_session():
    session = requests.Session()
    session.trust_env = False
    return session


class TestAvailabilityOverHttp:
    def test_fast_server_is_available(self, tags_server):
        status = OllamaClient(tags_server(0.0), session=_direct_session(), probe_timeout=5.0).check_availability()

        assert status.available is True
        assert status.models == ["gemma3:1b"]

    def test_trickling_server_is_abandoned_at_deadline(self, tags_server):
        client = OllamaClient(tags_server(0.2), session=_direct_session(), probe_timeout=1.0)

        started = time.monotonic()
        status = client.check_availability()
        elapsed = time.monotonic() - started

        assert status.available is False
        assert elapsed < 2.0
