import io
import re
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict


class FakeAdapter(BaseAdapter):
    """Answers every request with handler(prepared) -> (status, body) without touching the network."""

    def __init__(self, handler=None):
        super().__init__()
        self.handler = handler or (lambda req: (200, b'{"data":{"key":"value"}}'))
        self.raw_factory = io.BytesIO
        self.requests = []
        self.bodies = []
        self.timeouts = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.requests.append(request)
        self.bodies.append(request.body.read() if hasattr(request.body, "read") else request.body)
        self.timeouts.append(timeout)
        status, body = self.handler(request)

        resp = requests.Response()
        resp.status_code = status
        resp.raw = self.raw_factory(body)
        resp.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        resp.url = request.url
        resp.request = request
        resp.connection = self
        return resp

    def close(self):
        pass


@pytest.fixture
def fake():
    adapter = FakeAdapter()
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    adapter.session = session
    return adapter


def parse_multipart(content_type, body):
    """Split a multipart/form-data body into (name, filename, content) tuples."""
    boundary = content_type.split("boundary=", 1)[1].strip('"').encode()
    parts = []
    for chunk in body.split(b"--" + boundary)[1:-1]:
        head, _, content = chunk[2:].partition(b"\r\n\r\n")
        disposition = head.decode("utf-8")
        name = re.search(r'name="([^"]*)"', disposition).group(1)
        filename = re.search(r'filename="([^"]*)"', disposition)
        parts.append((name, filename.group(1) if filename else None, content[:-2]))
    return parts


class _Recorder:
    def __init__(self):
        self.calls = []
        self.status = 200
        self.body = b'{"data":{"value":"some data"}}'
        self.delay = 0.0

    def respond(self, status, body):
        self.status = status
        self.body = body


@pytest.fixture
def server():
    recorder = _Recorder()

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length", "0"))
            recorder.calls.append((self.command, dict(self.headers), self.rfile.read(length)))
            time.sleep(recorder.delay)
            self.send_response(recorder.status)
            self.send_header("Content-Length", str(len(recorder.body)))
            self.end_headers()
            self.wfile.write(recorder.body)

        def log_message(self, format, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    recorder.url = f"http://127.0.0.1:{httpd.server_address[1]}/graphql"
    try:
        yield recorder
    finally:
        httpd.shutdown()
        httpd.server_close()
