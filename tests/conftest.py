import json
from types import SimpleNamespace

import pytest

from inkwell.app import create_app
from inkwell.flows import FlowClient
from inkwell.store import SqliteBlobStore
from inkwell.workspace import Workspace


class FakeCompletions:
    """Stands in for client.chat.completions, replaying canned replies."""

    def __init__(self):
        self.replies = []
        self.calls = []
        self.error = None

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        reply = self.replies.pop(0)
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeChatClient:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def reply_with(self, *replies):
        self.completions.replies.extend(replies)

    def fail_with(self, error):
        self.completions.error = error

    @property
    def calls(self):
        return self.completions.calls

    def last_prompt(self) -> str:
        return self.calls[-1]["messages"][-1]["content"]


@pytest.fixture()
def fake_llm():
    return FakeChatClient()


@pytest.fixture()
def flows(fake_llm):
    return FlowClient(client=fake_llm, model="test-model")


@pytest.fixture()
def blobs(tmp_path):
    return SqliteBlobStore(str(tmp_path / "inkwell.db"))


@pytest.fixture()
def workspace(blobs, flows):
    ws = Workspace(blobs, flows)
    ws.load()
    return ws


@pytest.fixture()
def app(workspace):
    app = create_app(workspace, passcode="1234", secret_key="test")
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    """A test client that has already passed the passcode gate."""
    client = app.test_client()
    resp = client.post("/api/unlock", json={"passcode": "1234"})
    assert resp.status_code == 200
    return client
