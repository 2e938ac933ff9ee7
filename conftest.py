"""Shared pytest fixtures: fake HTTP responses and a fake OpenAI client."""

import json
from types import SimpleNamespace

import pytest


class FakeRaw:
    """Streamed body handed out chunk_size bytes per read1 call."""

    def __init__(self, body, chunk_size=None, on_read=None):
        self.body = body
        self.original = body
        self.chunk_size = chunk_size
        self.on_read = on_read
        self.reads = 0

    def read1(self, amt=-1, decode_content=None):
        self.reads += 1
        if self.on_read is not None:
            self.on_read()
        size = self.chunk_size or amt
        chunk, self.body = self.body[:size], self.body[size:]
        return chunk

    def rewind(self):
        # each request gets the full body, as a fresh requests.Response would
        self.body = self.original


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text=None, chunk_size=None, on_read=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)
        self.encoding = "utf-8"
        self.raw = FakeRaw(self.text.encode("utf-8"), chunk_size, on_read)
        self.closed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def close(self):
        self.closed = True

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, content=None, error=None):
        self.chat = SimpleNamespace(completions=FakeCompletions(content, error))

    @property
    def calls(self):
        return self.chat.completions.calls


@pytest.fixture
def fake_get(monkeypatch):
    """Patch requests.get in spoonacular; set .response or .error before use."""
    import spoonacular

    class FakeGet:
        def __init__(self):
            self.response = FakeResponse(200, {})
            self.error = None
            self.calls = []

        def __call__(self, url, params=None, timeout=None, headers=None, stream=False):
            self.calls.append({
                "url": url, "params": params, "timeout": timeout, "headers": headers, "stream": stream,
            })
            if self.error is not None:
                raise self.error
            self.response.raw.rewind()
            return self.response

    fake = FakeGet()
    monkeypatch.setattr(spoonacular.requests, "get", fake)
    return fake


@pytest.fixture
def make_openai():
    def _make(content=None, error=None):
        return FakeOpenAI(content=content, error=error)
    return _make
