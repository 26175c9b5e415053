from __future__ import annotations

import concurrent.futures

import pytest
from fastapi.testclient import TestClient

from chat_relay.app import create_app

WELCOME = {"system": True, "text": "Welcome to WS server"}


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):  # type: ignore[no-untyped-def]
    monkeypatch.setenv("API_VERSION", "1.2.3")
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "api_version": "1.2.3"}


def test_unknown_paths_answer_liveness_text(client: TestClient) -> None:
    for path in ("/", "/anything/else"):
        response = client.get(path)

        assert response.status_code == 200
        assert response.text == "WS server running\n"
        assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.parametrize(
    ("search", "expected"),
    [
        ("pho", ["Phở bò", "Phở gà"]),
        ("BUN", ["Bún chả", "Bún bò Huế"]),
        ("cuon", ["Bánh cuốn", "Gỏi cuốn"]),
        ("pizza", []),
    ],
)
def test_food_search_ignores_case_and_diacritics(client: TestClient, search: str, expected: list[str]) -> None:
    response = client.get("/foods", params={"search": search})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.json() == {"search": search, "count": len(expected), "data": expected}


def test_food_search_without_term_lists_everything(client: TestClient) -> None:
    body = client.get("/foods").json()

    assert body["search"] == ""
    assert body["count"] == 12


def test_broadcast_reaches_every_client(client: TestClient) -> None:
    with client.websocket_connect("/") as ws_a, client.websocket_connect("/chat") as ws_b:
        assert _receive_with_timeout(ws_a) == WELCOME
        assert _receive_with_timeout(ws_b) == WELCOME

        ws_a.send_json({"user": "  " + "a" * 60, "text": "hi"})
        echoed = _receive_with_timeout(ws_a)
        received = _receive_with_timeout(ws_b)

    assert received == echoed
    assert received["user"] == "a" * 50
    assert received["text"] == "hi"
    assert isinstance(received["ts"], int)


def test_history_replay_for_late_subscriber(client: TestClient) -> None:
    with client.websocket_connect("/") as ws_a:
        _receive_with_timeout(ws_a)
        for index in range(3):
            ws_a.send_json({"user": "bob", "text": f"m{index}"})
            _receive_with_timeout(ws_a)

    with client.websocket_connect("/") as ws_late:
        frames = [_receive_with_timeout(ws_late) for _ in range(4)]

    assert frames[0] == WELCOME
    assert [frame["text"] for frame in frames[1:]] == ["m0", "m1", "m2"]
    config = client.get("/config").json()
    assert config["historySize"] == 3


def test_invalid_frames_get_error_replies(client: TestClient) -> None:
    with client.websocket_connect("/") as ws_a, client.websocket_connect("/") as ws_b:
        _receive_with_timeout(ws_a)
        _receive_with_timeout(ws_b)

        ws_a.send_text("not json")
        assert _receive_with_timeout(ws_a) == {"error": "Invalid message format. Expect JSON."}

        ws_a.send_json({"user": "bob", "text": "x" * 2001})
        assert _receive_with_timeout(ws_a) == {"error": "Message too long"}

        ws_a.send_json({"user": "bob"})
        assert _receive_with_timeout(ws_a) == {
            "error": "Invalid message fields. Expect { user: string, text: string }"
        }

        ws_a.send_json({"type": "cookie", "value": "abc"})
        assert _receive_with_timeout(ws_a) == {"ok": True, "type": "cookie_received"}

        ws_a.send_json({"user": "bob", "text": "still here"})
        next_for_b = _receive_with_timeout(ws_b)

    assert next_for_b["text"] == "still here"
    assert client.get("/config").json()["historySize"] == 1


def _receive_with_timeout(ws, timeout: float = 2.0):  # type: ignore[no-untyped-def]
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
    fut = executor.submit(ws.receive_json)
    try:
        return fut.result(timeout=timeout)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
