"""Unit tests for the request logging middleware."""

import logging

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from src.api.middleware.request_logging import redact_query


def make_request(query: bytes) -> Request:
    return Request({"type": "http", "method": "GET", "path": "/api/v1/join", "query_string": query, "headers": []})


class TestRedactQuery:
    """Tests for redact_query."""

    def test_masks_token(self) -> None:
        assert redact_query(make_request(b"token=" + b"a" * 64 + b"&page=2")) == "token=***&page=2"

    def test_leaves_other_params(self) -> None:
        assert redact_query(make_request(b"page=2")) == "page=2"

    def test_empty(self) -> None:
        assert redact_query(make_request(b"")) == ""


class TestRequestLoggingMiddleware:
    """Tests for the middleware as mounted on the app."""

    def test_token_never_logged(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        token = "ab" * 32

        with caplog.at_level(logging.WARNING, logger="src.api.middleware.request_logging"):
            client.get("/api/v1/unknown", params={"token": token, "page": "1"})

        messages = [r.getMessage() for r in caplog.records if r.name == "src.api.middleware.request_logging"]
        assert any("/api/v1/unknown?token=***&page=1" in m for m in messages)
        assert all(token not in m for m in messages)
