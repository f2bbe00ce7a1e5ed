import json

import pytest
from fastapi.testclient import TestClient

from Expressions.evaluate import evaluate
from Expressions.parser import parse
from main import MAX_ORDER, app, normalize_expression


@pytest.fixture
def client():
    return TestClient(app)


def events(response):
    return [json.loads(line[len("data: "):])
            for line in response.text.splitlines() if line.startswith("data: ")]


# ─── 1) Health ──────────────────────────────────────────────────────────────────

def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Backend is alive"}


def test_uptime(client):
    assert client.get("/uptime").json() == {"status": "alive"}


# ─── 2) Differentiation ─────────────────────────────────────────────────────────

def test_differentiate(client):
    response = client.post("/differentiate", json={"expression": "x ^ 2"})
    assert response.status_code == 200
    body = response.json()
    assert body["derivatives"][0]["derivative"] == "2*x"
    assert body["derivatives"][0]["derivative_latex"] == "2x"


def test_unicode_symbols_are_normalized(client):
    assert normalize_expression("2 × π − x") == "2 * pi - x"
    response = client.post("/differentiate", json={"expression": "x × x"})
    assert response.json()["derivatives"][0]["derivative"] == "2*x"


@pytest.mark.parametrize("expression", ["x +", "sin x", "2x"])
def test_malformed_expression_is_a_bad_request(client, expression):
    response = client.post("/differentiate", json={"expression": expression})
    assert response.status_code == 400
    assert response.json()["detail"]


def test_overly_deep_expression_is_a_bad_request(client):
    response = client.post("/differentiate", json={"expression": " + ".join(["x"] * 1500)})
    assert response.status_code == 400
    assert "deeper than" in response.json()["detail"]


def test_empty_expression_is_a_bad_request(client):
    response = client.post("/differentiate", json={"expression": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "Expression cannot be empty."


@pytest.mark.parametrize("order", [0, MAX_ORDER + 1])
def test_order_is_validated(client, order):
    response = client.post("/differentiate", json={"expression": "x", "order": order})
    assert response.status_code == 422


# ─── 3) Streaming ───────────────────────────────────────────────────────────────

def test_solve_stream(client):
    response = client.get("/solve_stream", params={"expression": "x ^ 3", "order": 2})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    received = events(response)
    assert [event["type"] for event in received] == ["derivative", "derivative", "complete"]
    assert received[0]["derivative"] == "3*x^2"
    assert received[-1]["order"] == 2


def test_solve_stream_reports_errors_as_events(client):
    response = client.get("/solve_stream", params={"expression": "sin x"})
    received = events(response)
    assert len(received) == 1
    assert received[0]["type"] == "error"
    assert "Extra lexeme at the end." in received[0]["detail"]


def test_solve_stream_rejects_bad_order(client):
    response = client.get("/solve_stream", params={"expression": "x", "order": MAX_ORDER + 1})
    assert response.status_code == 400


# ─── 4) Values, Taylor, generation ──────────────────────────────────────────────

def test_evaluate(client):
    response = client.post("/evaluate", json={"expression": "x ^ 2", "point": 3})
    assert response.status_code == 200
    assert response.json()["substituted"] == "9"
    assert response.json()["value"] == 9


def test_taylor(client):
    response = client.post("/taylor", json={"expression": "x ^ 2", "point": 1, "order": 2})
    assert response.status_code == 200
    polynomial = parse(response.json()["polynomial"])
    assert evaluate(polynomial, 3) == pytest.approx(9)


def test_taylor_bad_expression(client):
    response = client.post("/taylor", json={"expression": "x +"})
    assert response.status_code == 400


def test_generate_is_reproducible_with_seed(client):
    first = client.post("/generate", json={"seed": 7}).json()
    second = client.post("/generate", json={"seed": 7}).json()
    assert first == second
    parse(first["expression_string"])
    assert first["expression_latex"]
