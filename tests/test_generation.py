import json

import httpx
import pytest


@pytest.mark.asyncio
async def test_inference_returns_generation(client, cohere_stub):
    resp = await client.post("/api/cohere/inference", json={"prompt": "Write a short story about a robot"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["response"] == "Once upon a time, a robot learned to paint."
    assert body["model"] == "command"
    assert body["usage"] == {"prompt_tokens": 7, "completion_tokens": 11, "total_tokens": None}

    assert len(cohere_stub.requests) == 1
    sent = cohere_stub.requests[0]
    assert sent.headers["Authorization"] == "Bearer test-cohere-key"
    assert json.loads(sent.content) == {
        "model": "command",
        "prompt": "Write a short story about a robot",
        "max_tokens": 150,
        "temperature": 0.7,
        "k": 0,
        "stop_sequences": [],
        "return_likelihoods": "NONE",
    }


@pytest.mark.asyncio
async def test_inference_forwards_overrides(client, cohere_stub):
    cohere_stub.body = {
        "generations": [{"text": "ok"}],
        "meta": {"billed_units": {"input_tokens": 1, "output_tokens": 2, "total_tokens": 3}},
    }
    resp = await client.post(
        "/api/cohere/inference",
        json={"prompt": "hi", "model": "command-light", "max_tokens": 20, "temperature": 0.1},
    )
    assert resp.status_code == 200
    assert resp.json()["model"] == "command-light"
    assert resp.json()["usage"]["total_tokens"] == 3

    sent = json.loads(cohere_stub.requests[0].content)
    assert sent["model"] == "command-light"
    assert sent["max_tokens"] == 20
    assert sent["temperature"] == 0.1


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [None, {}, {"prompt": ""}, {"model": "command"}])
async def test_missing_prompt_is_rejected_without_upstream_call(client, cohere_stub, payload):
    if payload is None:
        resp = await client.post("/api/cohere/inference")
    else:
        resp = await client.post("/api/cohere/inference", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"] == "Prompt is required"
    assert cohere_stub.requests == []


@pytest.mark.asyncio
async def test_missing_credential_is_service_unavailable(unconfigured_client, cohere_stub):
    resp = await unconfigured_client.post("/api/cohere/inference", json={"prompt": "hello"})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Cohere API key not configured"
    assert cohere_stub.requests == []


@pytest.mark.asyncio
async def test_prompt_checked_before_credential(unconfigured_client):
    resp = await unconfigured_client.post("/api/cohere/inference", json={})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_invalid_max_tokens_is_bad_request(client, cohere_stub):
    resp = await client.post("/api/cohere/inference", json={"prompt": "hi", "max_tokens": 0})
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert body["details"]
    assert cohere_stub.requests == []


@pytest.mark.asyncio
async def test_upstream_error_is_reported_with_raw_message(client, cohere_stub):
    cohere_stub.status_code = 401
    cohere_stub.body = {"message": "invalid api token"}

    resp = await client.post("/api/cohere/inference", json={"prompt": "hi"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Cohere inference failed"
    assert body["message"] == "invalid api token"
    assert len(cohere_stub.requests) == 1


@pytest.mark.asyncio
async def test_network_error_is_upstream_failure(client, cohere_stub):
    cohere_stub.error = httpx.ConnectError("connection refused")

    resp = await client.post("/api/cohere/inference", json={"prompt": "hi"})
    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Cohere inference failed"
    assert "connection refused" in body["message"]


@pytest.mark.asyncio
async def test_missing_usage_fields_are_null(client, cohere_stub):
    cohere_stub.body = {"generations": [{"text": "bare"}]}

    resp = await client.post("/api/cohere/inference", json={"prompt": "hi"})
    assert resp.status_code == 200
    assert resp.json()["usage"] == {"prompt_tokens": None, "completion_tokens": None, "total_tokens": None}


@pytest.mark.asyncio
async def test_empty_generations_is_upstream_failure(client, cohere_stub):
    cohere_stub.body = {"generations": []}

    resp = await client.post("/api/cohere/inference", json={"prompt": "hi"})
    assert resp.status_code == 500
    assert resp.json()["message"] == "No generations in Cohere response"
