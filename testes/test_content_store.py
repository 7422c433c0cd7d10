import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests

from wp_importer.migrators.content_store import InMemoryContentStore, RestContentStore, store_headers
from wp_importer.migrators.http import RateLimiter, with_retries
from wp_importer.utils.errors import RecordError
from wxr_samples import FakeResponse

BASE_URL = "https://cms.example.com/api/v1"


class ScriptedSession:
    """Returns queued responses in order and records every request."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)

    def patch(self, url, **kwargs):
        return self._next("PATCH", url, kwargs)


def make_store(*responses):
    session = ScriptedSession(*responses)
    cfg = {"base_url": BASE_URL + "/", "access_token": "secret", "rpm": 60000, "timeout": 5}
    return RestContentStore(cfg, session=session), session


def test_headers_include_bearer_token_only_when_configured():
    assert store_headers({"access_token": "abc"})["Authorization"] == "Bearer abc"
    assert "Authorization" not in store_headers({})


def test_find_queries_by_field_and_unwraps_envelope():
    body = {"status": "success", "data": {"users": [{"_id": "u1", "email": "a@example.com"}]}}
    store, session = make_store(FakeResponse(json_data=body))

    assert store.find("users", "email", "a@example.com") == "u1"

    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", BASE_URL + "/users")
    assert kwargs["params"] == {"email": "a@example.com", "limit": 1}
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["Authorization"] == "Bearer secret"


def test_find_returns_none_for_empty_results():
    store, _ = make_store(FakeResponse(json_data={"data": {"posts": []}}), FakeResponse(json_data=[]))
    assert store.find("posts", "slug", "hello") is None
    assert store.find("posts", "slug", "hello") is None


def test_create_posts_json_and_returns_id():
    store, session = make_store(FakeResponse(json_data={"data": {"category": {"id": 42, "name": "News"}}}))

    assert store.create("categories", {"name": "News"}) == "42"

    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", BASE_URL + "/categories")
    assert kwargs["json"] == {"name": "News"}
    assert kwargs["headers"]["Content-Type"] == "application/json"


def test_create_validation_error_becomes_record_error():
    store, session = make_store(FakeResponse(status_code=400, json_data={"message": "slug taken"}))
    with pytest.raises(RecordError, match="slug taken"):
        store.create("posts", {"title": "x"})
    assert len(session.calls) == 1


def test_create_without_id_is_an_error():
    store, _ = make_store(FakeResponse(json_data={"data": {}}))
    with pytest.raises(RecordError):
        store.create("media", {})


def test_create_retries_rate_limited_requests():
    store, session = make_store(
        FakeResponse(status_code=429, headers={"Retry-After": "0"}),
        FakeResponse(json_data={"id": "c1"}),
    )
    assert store.create("comments", {"content": "hi"}) == "c1"
    assert len(session.calls) == 2


def test_update_patches_entity():
    store, session = make_store(FakeResponse(json_data={"id": "c2"}))
    store.update("comments", "c2", {"parent": "c1"})
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("PATCH", BASE_URL + "/comments/c2")
    assert kwargs["json"] == {"parent": "c1"}


def test_unknown_collection_is_rejected():
    store, _ = make_store()
    with pytest.raises(ValueError):
        store.find("widgets", "id", 1)


def test_with_retries_gives_up_on_client_errors():
    calls = []

    def request():
        calls.append(1)
        return FakeResponse(status_code=404)

    with pytest.raises(requests.HTTPError):
        with_retries(request, sleep_fn=lambda seconds: None)
    assert len(calls) == 1


def test_with_retries_backs_off_exponentially_on_network_errors():
    delays = []

    def request():
        raise requests.ConnectionError("down")

    with pytest.raises(requests.ConnectionError):
        with_retries(request, max_attempts=4, base_delay=1, sleep_fn=delays.append)
    assert delays == [1, 2, 4]


def test_with_retries_honours_retry_after():
    delays = []
    responses = iter([FakeResponse(status_code=503, headers={"Retry-After": "3"}), FakeResponse()])
    assert with_retries(lambda: next(responses), sleep_fn=delays.append).status_code == 200
    assert delays == [3.0]


def test_rate_limiter_spaces_requests():
    clock = [100.0]
    slept = []

    def sleep(seconds):
        slept.append(seconds)
        clock[0] += seconds

    limiter = RateLimiter(rpm=60)
    limiter.wait(time_fn=lambda: clock[0], sleep_fn=sleep)
    clock[0] += 0.25
    limiter.wait(time_fn=lambda: clock[0], sleep_fn=sleep)

    assert slept == [pytest.approx(0.75)]


def test_in_memory_store_update_of_missing_entity_fails():
    store = InMemoryContentStore()
    with pytest.raises(RecordError):
        store.update("comments", "comment-1", {"parent": "comment-2"})


def test_with_retries_closes_discarded_responses():
    throttled = FakeResponse(status_code=429, headers={"Retry-After": "0"})
    unavailable = FakeResponse(status_code=503)
    final = FakeResponse()
    responses = iter([throttled, unavailable, final])

    assert with_retries(lambda: next(responses), sleep_fn=lambda seconds: None) is final

    assert throttled.closed and unavailable.closed
    assert not final.closed
