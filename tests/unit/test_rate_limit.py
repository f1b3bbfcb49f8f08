"""Unit tests for the rate-limit caller key."""

import pytest
from libs.common.rate_limit import caller_key
from starlette.requests import Request


def _request(headers: dict) -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/registrations/",
            "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
            "client": ("10.0.0.9", 5000),
        }
    )


@pytest.mark.unit
def test_bearer_callers_get_separate_buckets():
    first = caller_key(_request({"Authorization": "Bearer aaa"}))
    second = caller_key(_request({"Authorization": "Bearer bbb"}))

    assert first.startswith("caller:")
    assert first != second


@pytest.mark.unit
def test_anonymous_callers_keyed_by_forwarded_ip():
    key = caller_key(_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}))

    assert key == "ip:203.0.113.7"
    assert caller_key(_request({})) == "ip:10.0.0.9"
