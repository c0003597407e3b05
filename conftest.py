"""
Shared fixtures: an in-process stand-in for the OpenAI SDK client.
"""

from types import SimpleNamespace

import pytest

from prompt_matrix.core import CentralRouter, CompletionClient
from prompt_matrix.core import interfaces
from prompt_matrix.models import ProviderConfig


class FakeBackend:
    """What every fake client created during a test talks to."""

    def __init__(self):
        self.clients = []
        self.requests = []
        self.reply = "fake reply"
        self.chunk_size = 4
        self.error = None
        self.stream_error = None
        self.models = ["deepseek-chat", "deepseek-reasoner"]

    def text_for(self, params):
        return self.reply(params) if callable(self.reply) else self.reply

    @property
    def last_request(self):
        return self.requests[-1]


class FakeStream:
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __iter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, backend):
        self.backend = backend

    def create(self, **params):
        self.backend.requests.append(params)
        if self.backend.error is not None:
            raise self.backend.error

        text = self.backend.text_for(params)
        if params.get("stream"):
            size = self.backend.chunk_size
            chunks = [SimpleNamespace(choices=[]), _chunk(None)]
            chunks += [_chunk(text[i:i + size]) for i in range(0, len(text), size)]
            chunks.append(_chunk(""))
            return FakeStream(chunks, self.backend.stream_error)

        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
            usage=SimpleNamespace(total_tokens=42),
        )


class FakeOpenAI:
    def __init__(self, backend, **kwargs):
        self.kwargs = kwargs
        self.chat = SimpleNamespace(completions=FakeCompletions(backend))
        self.models = SimpleNamespace(list=lambda: [SimpleNamespace(id=m) for m in backend.models])


@pytest.fixture
def fake_backend(monkeypatch):
    backend = FakeBackend()

    def factory(**kwargs):
        client = FakeOpenAI(backend, **kwargs)
        backend.clients.append(client)
        return client

    monkeypatch.setattr(interfaces, "OpenAI", factory)
    return backend


@pytest.fixture
def provider_config():
    return ProviderConfig(provider="deepseek", api_key="sk-test", model="deepseek-chat")


@pytest.fixture
def client(fake_backend, provider_config):
    completion_client = CompletionClient()
    completion_client.initialize(provider_config)
    return completion_client


@pytest.fixture
def router(client):
    return CentralRouter(client)
