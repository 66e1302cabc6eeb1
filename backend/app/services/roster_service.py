# Overview: HTTP client for the external roster provider (Zoho Projects users and projects).

"""
External Roster Provider Client

The roster provider is the system of record for employees and projects.
We read from it; we never write to it.

AUTH: OAuth2 refresh-token grant. The access token is cached and
refreshed TOKEN_REFRESH_MARGIN before it expires. A 401 from the API
forces one refresh and a single retry of that page.

PAGINATION:
- users:    page / per_page (1-based pages)
- projects: search API with index / range (1-based offsets), including
            archived projects; pages are de-duplicated by id
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from flask import current_app


TOKEN_REFRESH_MARGIN = 60  # seconds
PAGE_SIZE = 200  # provider maximum


class RosterError(Exception):
    """The roster provider is unreachable, misconfigured or returned an error."""


@dataclass(frozen=True)
class RosterUser:
    id: str
    name: str
    email: str | None
    role: str | None = None
    status: str | None = None

    @property
    def first_name(self) -> str:
        parts = (self.name or "").split()
        if parts:
            return parts[0]
        if self.email:
            return self.email.split("@")[0]
        return "User"

    @property
    def last_name(self) -> str:
        return " ".join((self.name or "").split()[1:])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
        }


@dataclass(frozen=True)
class RosterProject:
    id: str
    name: str
    description: str | None = None
    status: str | None = None
    budget: float | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "budget": self.budget,
        }


def _parse_user(raw: dict) -> RosterUser:
    return RosterUser(
        id=str(raw.get("id")),
        name=raw.get("name") or "",
        email=raw.get("email") or None,
        role=raw.get("role"),
        status=raw.get("status"),
    )


def _parse_project(raw: dict) -> RosterProject:
    budget = raw.get("budget")
    try:
        budget = float(budget) if budget not in (None, "") else None
    except (TypeError, ValueError):
        budget = None
    return RosterProject(
        id=str(raw.get("id")),
        name=raw.get("name") or f"Project {raw.get('id')}",
        description=raw.get("description") or None,
        status=raw.get("status"),
        budget=budget,
    )


class RosterClient:
    def __init__(
        self,
        *,
        base_url: str,
        auth_url: str,
        client_id: str | None,
        client_secret: str | None,
        refresh_token: str | None,
        portal_id: str | None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.auth_url = auth_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.portal_id = portal_id
        self._clock = clock
        self._http = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_config(cls, config) -> "RosterClient":
        return cls(
            base_url=config["ROSTER_API_BASE_URL"],
            auth_url=config["ROSTER_AUTH_URL"],
            client_id=config.get("ROSTER_CLIENT_ID"),
            client_secret=config.get("ROSTER_CLIENT_SECRET"),
            refresh_token=config.get("ROSTER_REFRESH_TOKEN"),
            portal_id=config.get("ROSTER_PORTAL_ID"),
            timeout=config.get("ROSTER_TIMEOUT_SECONDS", 15.0),
        )

    @property
    def is_configured(self) -> bool:
        return all([self.client_id, self.client_secret, self.refresh_token, self.portal_id])

    def close(self) -> None:
        self._http.close()

    # -- auth ----------------------------------------------------------------

    def _invalidate_token(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    def access_token(self) -> str:
        if self._access_token and self._clock() < self._token_expires_at:
            return self._access_token

        if not self.is_configured:
            raise RosterError("Roster provider credentials are not configured")

        try:
            response = self._http.post(
                self.auth_url,
                data={
                    "refresh_token": self.refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.HTTPError as e:
            raise RosterError(f"Token refresh failed: {e}") from e

        if response.status_code != 200:
            raise RosterError(f"Token refresh failed: HTTP {response.status_code}")

        payload = response.json()
        token = payload.get("access_token")
        if not token:
            raise RosterError("Token refresh returned no access_token")

        expires_in = float(payload.get("expires_in", 3600))
        self._access_token = token
        self._token_expires_at = self._clock() + expires_in - TOKEN_REFRESH_MARGIN
        return token

    def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        for attempt in range(2):
            headers = {"Authorization": f"Zoho-oauthtoken {self.access_token()}"}
            try:
                response = self._http.get(path, params=params, headers=headers)
            except httpx.HTTPError as e:
                raise RosterError(f"Roster request failed: {e}") from e

            if response.status_code == 401 and attempt == 0:
                self._invalidate_token()
                continue
            if response.status_code == 204:
                return response
            if response.status_code != 200:
                raise RosterError(f"Roster API error: HTTP {response.status_code} for {path}")
            return response
        raise RosterError(f"Roster API rejected credentials for {path}")

    # -- directory -----------------------------------------------------------

    def list_users(self) -> list[RosterUser]:
        users: list[RosterUser] = []
        page = 1
        while True:
            response = self._get(
                f"/restapi/portal/{self.portal_id}/users/",
                {"page": page, "per_page": PAGE_SIZE},
            )
            batch = response.json().get("users", []) if response.status_code == 200 else []
            if not batch:
                break
            users.extend(_parse_user(raw) for raw in batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1

        current_app.logger.info("Fetched %d users from roster provider", len(users))
        return users

    def list_projects(self) -> list[RosterProject]:
        projects: list[RosterProject] = []
        seen: set[str] = set()
        index = 1
        while True:
            response = self._get(
                f"/restapi/portal/{self.portal_id}/search/",
                {"module": "projects", "module_status": "all", "index": index, "range": PAGE_SIZE},
            )
            batch = response.json().get("projects", []) if response.status_code == 200 else []
            if not batch:
                break

            fresh = [raw for raw in batch if str(raw.get("id")) not in seen]
            if not fresh:
                break
            for raw in fresh:
                seen.add(str(raw.get("id")))
                projects.append(_parse_project(raw))

            if len(batch) < PAGE_SIZE:
                break
            index += PAGE_SIZE

        current_app.logger.info("Fetched %d projects from roster provider", len(projects))
        return projects

    def find_user(self, roster_id: str) -> RosterUser | None:
        return next((u for u in self.list_users() if u.id == str(roster_id)), None)

    def find_project(self, roster_id: str) -> RosterProject | None:
        return next((p for p in self.list_projects() if p.id == str(roster_id)), None)


def get_roster_client() -> RosterClient:
    """Application-scoped client, created on first use."""
    client = current_app.extensions.get("roster_client")
    if client is None:
        client = RosterClient.from_config(current_app.config)
        current_app.extensions["roster_client"] = client
    return client
