"""Identity lookup against the users service.

The lessons service does not store users. A principal name taken from
the bearer token is resolved to an `Identity` (user id and role) by
asking the users service over HTTP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol
from urllib.parse import quote

import httpx

from .errors import IdentityServiceError, NotFoundError

logger = logging.getLogger("lessons.identity")


class Role(str, Enum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"

    @classmethod
    def parse(cls, raw) -> Optional["Role"]:
        """Return the role for `raw` (case-insensitive) or `None` if unknown."""
        if raw is None:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Identity:
    id: int
    username: str
    role: Optional[Role]


class IdentityClient(Protocol):
    def resolve_user(self, name: str) -> Identity: ...


class HttpIdentityClient:
    """Resolve users with `GET {base_url}/users/{name}`.

    The users service answers with a JSON object holding at least `id`
    and `role`. A 404 means the user does not exist.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, client: httpx.Client | None = None):
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def resolve_user(self, name: str) -> Identity:
        try:
            resp = self._client.get(f"/users/{quote(name, safe='')}")
        except httpx.HTTPError as exc:
            logger.error("identity_lookup_failed user=%s error=%s", name, exc)
            raise IdentityServiceError("Identity service unavailable") from exc
        if resp.status_code == 404:
            raise NotFoundError(f"No user found for [{name}]")
        if resp.status_code >= 400:
            logger.error("identity_lookup_failed user=%s status=%s", name, resp.status_code)
            raise IdentityServiceError(f"Identity service returned {resp.status_code}")
        try:
            data = resp.json()
            user_id = int(data["id"])
        except (ValueError, KeyError, TypeError) as exc:
            raise IdentityServiceError("Identity service returned an invalid user record") from exc
        return Identity(id=user_id, username=data.get("username") or name, role=Role.parse(data.get("role")))

    def close(self) -> None:
        self._client.close()
