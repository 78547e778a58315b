import os

# Must be set before server/lena_engine are imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = "sk-test"
os.environ["ELEVENLABS_API_KEY"] = "xi-test"
os.environ["TTS_PROVIDER"] = "elevenlabs"
os.environ["LOG_EXCHANGES"] = "true"
os.environ["SECRET_KEY"] = "test-secret"
os.environ.pop("SYSTEM_PROMPT_FILE", None)

import pytest
import requests

import server


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, content=b"", text="", headers=None):
        self.status_code = status_code
        self._json = json_data
        self.content = content
        self.text = text
        self.headers = headers or {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._json

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class RecordingPost:
    """Stands in for requests.post and remembers every call."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def fake_post(monkeypatch):
    def install(response):
        recorder = RecordingPost(response)
        monkeypatch.setattr("lena_engine.requests.post", recorder)
        return recorder
    return install


@pytest.fixture
def client():
    server.app.config["TESTING"] = True
    db = server.SessionLocal()
    db.query(server.Exchange).delete()
    db.commit()
    db.close()
    with server.app.test_client() as c:
        yield c
