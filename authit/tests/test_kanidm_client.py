"""Tests for the Kanidm REST client over a mocked transport."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from authit.errors import UpstreamError, UpstreamTimeout
from authit.kanidm.client import KanidmClient
from authit.kanidm.models import Group, Person


def _client(handler) -> KanidmClient:
    return KanidmClient("https://idm.test/", "admin-token", transport=httpx.MockTransport(handler))


def _entry(**attrs) -> dict:
    return {"attrs": {key: value if isinstance(value, list) else [value] for key, value in attrs.items()}}


def test_person_translation_defaults():
    person = Person.from_entry(_entry(uuid="u-1", name="jdoe"))
    assert person.display_name == "Unknown"
    assert person.mail is None
    assert person.groups == []


def test_person_translation_requires_uuid_and_name():
    with pytest.raises(ValueError):
        Person.from_entry(_entry(name="jdoe"))
    with pytest.raises(ValueError):
        Person.from_entry(_entry(uuid="u-1"))
    with pytest.raises(ValueError):
        Person.from_entry({"nope": {}})


def test_group_translation():
    group = Group.from_entry(_entry(uuid="g-1", name="staff", member=["jdoe@idm.test", "alice@idm.test"]))
    assert group.members == ["jdoe@idm.test", "alice@idm.test"]


@pytest.mark.asyncio
async def test_list_persons_skips_malformed_entries():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["authorization"]
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json=[
                _entry(uuid="u-1", name="jdoe", displayname="Jane Doe", mail="jdoe@x.com", memberof=["staff@idm.test"]),
                _entry(name="no-uuid"),
            ],
        )

    async with _client(handler) as idm:
        persons = await idm.list_persons()

    assert seen == {"auth": "Bearer admin-token", "path": "/v1/person"}
    assert len(persons) == 1
    assert persons[0].display_name == "Jane Doe"
    assert persons[0].groups == ["staff@idm.test"]


@pytest.mark.asyncio
async def test_get_person_missing_returns_none():
    async with _client(lambda request: httpx.Response(404, text="notfound")) as idm:
        assert await idm.get_person("ghost") is None


@pytest.mark.asyncio
async def test_create_person_payload():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=None)

    async with _client(handler) as idm:
        await idm.create_person("jdoe", "Jane Doe", "jdoe@x.com")

    assert captured == {
        "method": "POST",
        "path": "/v1/person",
        "body": {"attrs": {"name": ["jdoe"], "displayname": ["Jane Doe"], "mail": ["jdoe@x.com"]}},
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("add,method", [(True, "POST"), (False, "DELETE")])
async def test_group_membership_changes(add, method):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200)

    async with _client(handler) as idm:
        if add:
            await idm.add_user_to_group("jdoe", "staff")
        else:
            await idm.remove_user_from_group("jdoe", "staff")

    assert captured == {"method": method, "path": "/v1/group/staff/_attr/member", "body": ["jdoe"]}


@pytest.mark.asyncio
async def test_delete_person():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        return httpx.Response(200)

    async with _client(handler) as idm:
        await idm.delete_person("jdoe")
    assert captured == {"method": "DELETE", "path": "/v1/person/jdoe"}


@pytest.mark.asyncio
async def test_credential_reset_link():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/person/jdoe/_credential/_update_intent"
        return httpx.Response(200, json={"token": "abc+def", "expiry_time": 1_760_000_000})

    async with _client(handler) as idm:
        link = await idm.generate_credential_reset_link("jdoe")

    parsed = urlparse(link.url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://idm.test/ui/reset"
    assert parse_qs(parsed.query) == {"token": ["abc+def"]}
    assert link.expires_at == datetime.fromtimestamp(1_760_000_000, tz=timezone.utc)


@pytest.mark.asyncio
async def test_error_status_carries_status_and_body():
    async with _client(lambda request: httpx.Response(409, text="duplicate name")) as idm:
        with pytest.raises(UpstreamError) as excinfo:
            await idm.create_person("jdoe", "Jane Doe")

    err = excinfo.value
    assert not isinstance(err, UpstreamTimeout)
    assert err.upstream_status == 409
    assert err.body == "duplicate name"
    assert "409" in err.message


@pytest.mark.asyncio
async def test_connect_failure_is_plain_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as idm:
        with pytest.raises(UpstreamError) as excinfo:
            await idm.create_person("jdoe", "Jane Doe")
    assert not isinstance(excinfo.value, UpstreamTimeout)


@pytest.mark.asyncio
async def test_read_timeout_is_ambiguous():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with _client(handler) as idm:
        with pytest.raises(UpstreamTimeout):
            await idm.create_person("jdoe", "Jane Doe")


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.DecodingError, httpx.TooManyRedirects, httpx.RemoteProtocolError])
async def test_other_httpx_failures_are_ambiguous(error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("broken response", request=request)

    async with _client(handler) as idm:
        with pytest.raises(UpstreamTimeout):
            await idm.create_person("jdoe", "Jane Doe")
