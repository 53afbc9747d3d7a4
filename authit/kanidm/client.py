"""Kanidm client - person/group administration over the v1 REST API."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from ..config import settings
from ..errors import UpstreamError, UpstreamTimeout
from ..schemas.provision import ResetLink
from .models import Group, Person

logger = logging.getLogger(__name__)


class KanidmClient:
    """Thin async wrapper around the Kanidm admin API.

    Usage:
        async with KanidmClient.from_settings() as idm:
            people = await idm.list_persons()
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, transport: httpx.AsyncBaseTransport | None = None) -> "KanidmClient":
        return cls(
            settings.idm_url,
            settings.kanidm_token,
            timeout=settings.kanidm_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, json: Any = None) -> httpx.Response:
        """Send a request, mapping transport and HTTP failures onto ``UpstreamError``.

        Connection failures mean the request never reached Kanidm. Any other
        ``httpx.HTTPError`` leaves the outcome unknown and is raised as
        ``UpstreamTimeout``.
        """
        try:
            response = await self._client.request(method, path, json=json)
        except (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout) as exc:
            logger.error("Kanidm unreachable: %s %s (%s)", method, path, type(exc).__name__)
            raise UpstreamError(f"Kanidm unreachable: {type(exc).__name__}") from exc
        except httpx.HTTPError as exc:
            logger.error("Kanidm request interrupted: %s %s (%s)", method, path, type(exc).__name__)
            raise UpstreamTimeout(f"Kanidm request did not complete: {type(exc).__name__}") from exc

        if response.is_error:
            body = response.text[:2000]
            logger.error("Kanidm API error (%s) on %s %s: %s", response.status_code, method, path, body)
            raise UpstreamError(
                f"Kanidm API error ({response.status_code}): {body}",
                upstream_status=response.status_code,
                body=body,
            )
        return response

    async def _json(self, method: str, path: str, json: Any = None) -> Any:
        response = await self._request(method, path, json=json)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("failed to parse Kanidm response", upstream_status=response.status_code) from exc

    # Persons

    async def list_persons(self) -> list[Person]:
        entries = await self._json("GET", "/v1/person") or []
        persons = []
        for entry in entries:
            try:
                persons.append(Person.from_entry(entry))
            except ValueError as exc:
                logger.warning("Skipping malformed person entry: %s", exc)
        return persons

    async def get_person(self, person_id: str) -> Person | None:
        try:
            entry = await self._json("GET", f"/v1/person/{quote(person_id, safe='')}")
        except UpstreamError as exc:
            if exc.upstream_status == 404:
                return None
            raise
        if entry is None:
            return None
        try:
            return Person.from_entry(entry)
        except ValueError as exc:
            raise UpstreamError(f"malformed person entry: {exc}") from exc

    async def create_person(self, name: str, display_name: str, mail: str | None = None) -> None:
        attrs: dict[str, list[str]] = {"name": [name], "displayname": [display_name]}
        if mail:
            attrs["mail"] = [mail]
        await self._request("POST", "/v1/person", json={"attrs": attrs})
        logger.info("Created Kanidm person %s", name)

    async def delete_person(self, person_id: str) -> None:
        await self._request("DELETE", f"/v1/person/{quote(person_id, safe='')}")
        logger.info("Deleted Kanidm person %s", person_id)

    # Groups

    async def list_groups(self) -> list[Group]:
        entries = await self._json("GET", "/v1/group") or []
        groups = []
        for entry in entries:
            try:
                groups.append(Group.from_entry(entry))
            except ValueError as exc:
                logger.warning("Skipping malformed group entry: %s", exc)
        return groups

    async def add_user_to_group(self, user_id: str, group_id: str) -> None:
        await self._request("POST", f"/v1/group/{quote(group_id, safe='')}/_attr/member", json=[user_id])
        logger.info("Added %s to group %s", user_id, group_id)

    async def remove_user_from_group(self, user_id: str, group_id: str) -> None:
        await self._request("DELETE", f"/v1/group/{quote(group_id, safe='')}/_attr/member", json=[user_id])
        logger.info("Removed %s from group %s", user_id, group_id)

    # Credentials

    async def generate_credential_reset_link(self, user_id: str) -> ResetLink:
        data = await self._json("GET", f"/v1/person/{quote(user_id, safe='')}/_credential/_update_intent")
        if not isinstance(data, dict) or not data.get("token"):
            raise UpstreamError("credential reset response did not include a token")

        expires_at = None
        expiry = data.get("expiry_time")
        if isinstance(expiry, (int, float)):
            expires_at = datetime.fromtimestamp(expiry, tz=timezone.utc)

        url = f"{self.base_url}/ui/reset?{urlencode({'token': data['token']})}"
        logger.info("Generated credential reset link for %s", user_id)
        return ResetLink(url=url, expires_at=expires_at)


async def get_kanidm_client():
    """FastAPI dependency that yields a client configured from settings."""
    async with KanidmClient.from_settings() as client:
        yield client
