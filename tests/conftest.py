from types import SimpleNamespace

import httpx
import openai
import pytest

from jdoptimizer.shell import RelayError


class FakeClient:
    def __init__(self, owner):
        self.owner = owner
        self.closed = False
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=owner._create))

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True


class FakeLLM:
    """Stands in for the OpenAI client class; records every client and call."""

    def __init__(self):
        self.reply = "Optimized job description"
        self.error = None
        self.clients = []
        self.instances = []
        self.calls = []

    def __call__(self, **kwargs):
        self.clients.append(kwargs)
        client = FakeClient(self)
        self.instances.append(client)
        return client

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeRelay:
    def __init__(self, reply="Optimized job description"):
        self.reply = reply
        self.error = None
        self.calls = []
        self.on_call = None
        self.closed = False

    def optimize(self, job_description):
        self.calls.append(job_description)
        if self.on_call is not None:
            self.on_call()
        if self.error is not None:
            raise RelayError(self.error)
        return self.reply

    def close(self):
        self.closed = True


def status_error(status, body):
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    response = httpx.Response(status, request=request, json={"error": body})
    return openai.APIStatusError("upstream failure", response=response, body=body)


@pytest.fixture
def fake_llm(monkeypatch):
    fake = FakeLLM()
    monkeypatch.setenv("GROQ_API_KEY", "test-key")
    monkeypatch.setattr("jdoptimizer.model.OpenAI", fake)
    return fake


@pytest.fixture
def fake_relay():
    return FakeRelay()
