"""Pytest configuration and fixtures for dictation tests."""

import logging

import pytest
from fastapi.testclient import TestClient

from dictation.main import app, get_polish, get_stt
from dictation.store import MemoryStore, get_store
from tests.fakes import FakeSTT

logging.basicConfig(level=logging.INFO)


@pytest.fixture
def store():
    s = MemoryStore()
    s.register_token("tok-alice", "alice")
    s.register_token("tok-bob", "bob")
    return s


@pytest.fixture
def fake_stt():
    return FakeSTT()


@pytest.fixture
def polish_calls():
    return []


@pytest.fixture
def client(store, fake_stt, polish_calls):
    """TestClient with in-memory store, fake STT and an echoing polish step."""

    async def polish(system_prompt, user_prompt):
        polish_calls.append((system_prompt, user_prompt))
        text = user_prompt.split("Text to format:\n", 1)[1].rsplit("\n\nReturn only", 1)[0]
        return text.capitalize() + "."

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_stt] = lambda: fake_stt
    app.dependency_overrides[get_polish] = lambda: polish
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return {"Authorization": "Bearer tok-alice"}


@pytest.fixture
def bob():
    return {"Authorization": "Bearer tok-bob"}
