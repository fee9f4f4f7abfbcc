"""
Tests for the HTTP API: analysis, follow-up chat, static page, and errors.
"""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

import app as server
from research_console.config import FALLBACK_RESULT
from research_console.errors import BootstrapError, TaskExecutionError


def _client(settings, credentials, session):
    async def factory(cfg, creds):
        assert cfg is settings and creds is credentials
        return session

    return TestClient(server.create_app(settings, credentials, session_factory=factory))


def test_analyze_success(settings, credentials, make_session, text_event) -> None:
    session = make_session([text_event("## Innovation Summary\n"), text_event("Attention only.")])
    with _client(settings, credentials, session) as client:
        resp = client.post("/api/analyze", json={"prompt": "https://example.com/paper"})
    assert resp.status_code == 200
    assert resp.json() == {"result": "## Innovation Summary\nAttention only."}

    task = session.tasks[0]
    assert task.model_id == settings.model_id
    assert '"https://example.com/paper"' in task.instruction
    assert "Innovation Summary" in task.instruction
    assert "Key Limitations" in task.instruction
    assert "Future Directions" in task.instruction
    assert "firecrawl" in task.instruction
    assert session.closed


def test_analyze_failure_returns_500(settings, credentials, make_session, text_event) -> None:
    session = make_session([text_event("partial")], error=TaskExecutionError("model not found"))
    with _client(settings, credentials, session) as client:
        resp = client.post("/api/analyze", json={"prompt": "https://example.com/paper"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "model not found"}

        # The session stays usable for the next request.
        session.error = None
        again = client.post("/api/analyze", json={"prompt": "transformers"})
    assert again.status_code == 200
    assert again.json()["result"] == "partial"


def test_analyze_stream_failure_returns_500(settings, credentials, make_session) -> None:
    session = make_session([], error=BrokenPipeError("tool process died"))
    with _client(settings, credentials, session) as client:
        resp = client.post("/api/analyze", json={"prompt": "topic"})
    assert resp.status_code == 500
    assert "tool process died" in resp.json()["error"]


def test_analyze_without_text_returns_fallback(settings, credentials, make_session) -> None:
    with _client(settings, credentials, make_session([])) as client:
        resp = client.post("/api/analyze", json={"prompt": "topic"})
    assert resp.json() == {"result": FALLBACK_RESULT}


def test_analyze_requires_prompt(settings, credentials, make_session) -> None:
    with _client(settings, credentials, make_session([])) as client:
        resp = client.post("/api/analyze", json={"topic": "x"})
    assert resp.status_code == 422


def test_chat_relies_on_session_memory(settings, credentials, make_session, text_event) -> None:
    session = make_session([text_event("Because of O(n^2) attention.")])
    with _client(settings, credentials, session) as client:
        resp = client.post("/api/chat", json={"question": "Why is it slow?"})
    assert resp.status_code == 200
    assert resp.json() == {"result": "Because of O(n^2) attention."}
    instruction = session.tasks[0].instruction
    assert "you just analyzed" in instruction
    assert '"Why is it slow?"' in instruction


def test_chat_embeds_prior_report(settings, credentials, make_session, text_event) -> None:
    session = make_session([text_event("ok")])
    with _client(settings, credentials, session) as client:
        client.post("/api/chat", json={"question": "Limits?", "context": "## Report\nSparse attention."})
    instruction = session.tasks[0].instruction
    assert "Sparse attention." in instruction
    assert '"Limits?"' in instruction


def test_chat_failure_returns_500(settings, credentials, make_session) -> None:
    session = make_session([], error=TaskExecutionError("rate limited"))
    with _client(settings, credentials, session) as client:
        resp = client.post("/api/chat", json={"question": "More?"})
    assert resp.status_code == 500
    assert resp.json() == {"error": "rate limited"}


def test_index_and_health(settings, credentials, make_session) -> None:
    with _client(settings, credentials, make_session([])) as client:
        page = client.get("/")
        health = client.get("/healthz")
    assert page.status_code == 200
    assert page.headers["content-type"].startswith("text/html")
    assert "/api/analyze" in page.text and "/api/chat" in page.text
    assert health.json() == {"status": "ok"}


def test_unknown_route_is_404(settings, credentials, make_session) -> None:
    with _client(settings, credentials, make_session([])) as client:
        assert client.get("/api/missing").status_code == 404
        assert client.get("/api/analyze").status_code in (404, 405)


def test_bootstrap_failure_aborts_startup(settings, credentials) -> None:
    async def failing_factory(cfg, creds):
        raise BootstrapError("handshake failed")

    app = server.create_app(settings, credentials, session_factory=failing_factory)
    with pytest.raises(BootstrapError):
        with TestClient(app):
            pass


def test_overlapping_chats_keep_results_separate(settings, credentials, make_session, text_event) -> None:
    """
    Two chats in flight against one shared session. Conversational content
    may interleave in the agent's memory; each response must still carry only
    its own stream's text.
    """

    class PerTaskSession:
        def __init__(self) -> None:
            self.tasks = []

        async def submit(self, task):
            self.tasks.append(task)
            label = "alpha" if "alpha" in task.instruction else "beta"
            for i in range(3):
                await asyncio.sleep(0.01)
                yield text_event(f"{label}{i};")

    session = PerTaskSession()
    app = server.create_app(settings, credentials, session_factory=None)
    app.state.session = session

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            return await asyncio.gather(
                client.post("/api/chat", json={"question": "alpha?"}),
                client.post("/api/chat", json={"question": "beta?"}),
            )

    first, second = asyncio.run(scenario())
    assert first.status_code == second.status_code == 200
    assert first.json() == {"result": "alpha0;alpha1;alpha2;"}
    assert second.json() == {"result": "beta0;beta1;beta2;"}
    assert len(session.tasks) == 2
