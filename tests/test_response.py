"""
Tests for the HTTP response wrapper.
"""

import json
from datetime import datetime, timezone

import pytest

from anvil.client import Response


def json_response(status, payload, headers=None):
    all_headers = {"Content-Type": "application/json"}
    all_headers.update(headers or {})
    return Response(status, json.dumps(payload).encode(), all_headers)


class TestBodyParsing:
    """Body decoding rules."""

    def test_json_body(self):
        response = json_response(200, {"eid": "abc"})
        assert response.body == {"eid": "abc"}

    def test_data_envelope_unwrapped(self):
        response = json_response(200, {"data": {"etchPacket": {"eid": "p1"}}})
        assert response.data == {"etchPacket": {"eid": "p1"}}

    def test_data_without_envelope(self):
        response = json_response(200, [1, 2, 3])
        assert response.data == [1, 2, 3]

    def test_json_parsed_without_content_type(self):
        response = Response(200, b'{"ok": true}', {"Content-Type": "text/plain"})
        assert response.body == {"ok": True}

    def test_text_body(self):
        response = Response(200, b"plain text", {"Content-Type": "text/plain"})
        assert response.body == "plain text"

    def test_empty_body(self):
        assert Response(204).body == ""

    @pytest.mark.parametrize(
        "content_type",
        ["application/pdf", "application/octet-stream", "application/zip; charset=binary"],
    )
    def test_binary_body_kept_raw(self, content_type):
        raw = b"%PDF-1.4\n\x00\x01"
        response = Response(200, raw, {"Content-Type": content_type})
        assert response.is_binary()
        assert response.body == raw

    def test_json_is_not_binary(self):
        assert not json_response(200, {}).is_binary()


class TestStatus:
    """Success / error predicates and error extraction."""

    @pytest.mark.parametrize("status,success", [(200, True), (201, True), (299, True), (300, False), (404, False), (500, False)])
    def test_success_range(self, status, success):
        response = Response(status)
        assert response.is_success() is success
        assert response.is_error() is not success

    def test_errors_empty_on_success(self):
        response = json_response(200, {"errors": [{"message": "ignored"}]})
        assert response.errors == []
        assert response.error_message is None

    def test_errors_list(self):
        response = json_response(400, {"errors": [{"message": "Name is required"}, {"message": "Email is invalid"}]})
        assert len(response.errors) == 2
        assert response.error_message == "Name is required, Email is invalid"

    def test_fields_list(self):
        response = json_response(400, {"fields": [{"message": "Bad field", "property": "x"}]})
        assert response.errors == [{"message": "Bad field", "property": "x"}]
        assert response.error_message == "Bad field"

    def test_message_field(self):
        response = json_response(500, {"message": "Internal failure"})
        assert response.error_message == "Internal failure"

    def test_generic_message(self):
        response = Response(502, b"<html>bad gateway</html>", {"Content-Type": "text/html"})
        assert response.error_message == "HTTP 502 Error"

    def test_graphql_errors_regardless_of_status(self):
        response = json_response(200, {"data": None, "errors": [{"message": "Field not found"}]})
        assert response.graphql_errors == [{"message": "Field not found"}]


class TestHeaders:
    """Header access and rate-limit metadata."""

    def test_case_insensitive_lookup(self):
        response = Response(200, headers={"X-Request-Id": "req-1"})
        assert response.header("x-request-id") == "req-1"
        assert response.header("X-REQUEST-ID") == "req-1"
        assert response.headers == {"x-request-id": "req-1"}

    def test_rate_limit_headers(self):
        response = Response(
            200,
            headers={
                "X-RateLimit-Limit": "100",
                "X-RateLimit-Remaining": "42",
                "X-RateLimit-Reset": "1700000000",
            },
        )
        assert response.rate_limit == 100
        assert response.rate_limit_remaining == 42
        assert response.rate_limit_reset == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_missing_rate_limit_headers(self):
        response = Response(200)
        assert response.rate_limit is None
        assert response.rate_limit_remaining is None
        assert response.rate_limit_reset is None
        assert response.retry_after is None

    def test_retry_after(self):
        assert Response(429, headers={"Retry-After": "12"}).retry_after == 12

    def test_unparseable_retry_after(self):
        response = Response(429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        assert response.retry_after is None

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan"])
    def test_non_finite_retry_after(self, value):
        assert Response(429, headers={"Retry-After": value}).retry_after is None

    def test_out_of_range_rate_limit_reset(self):
        response = Response(200, headers={"X-RateLimit-Reset": "1e20"})
        assert response.rate_limit_reset is None

    def test_huge_integer_rate_limit_reset(self):
        response = Response(200, headers={"X-RateLimit-Reset": str(10 ** 30)})
        assert response.rate_limit_reset is None
