"""
Authorization header parsing.

    Authorization: Bearer <access-or-refresh-token>
    Authorization: ApiKey <shared-secret>
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

from utils.errors import MalformedCredential, MissingCredential

AUTHORIZATION = "Authorization"


@dataclass(frozen=True)
class BearerToken:
    value: str


@dataclass(frozen=True)
class ApiKey:
    value: str


Credential = Union[BearerToken, ApiKey]

SCHEMES = {
    "bearer": BearerToken,
    "apikey": ApiKey,
}


def extract_credential(headers: Mapping[str, str]) -> Credential:
    """Parse the Authorization field into a typed credential."""
    raw = headers.get(AUTHORIZATION)
    if raw is None or not raw.strip():
        raise MissingCredential("no Authorization header")

    scheme, sep, value = raw.strip().partition(" ")
    credential_cls = SCHEMES.get(scheme.lower())
    if credential_cls is None:
        raise MalformedCredential("unrecognized authorization scheme")
    value = value.strip()
    if not sep or not value:
        raise MalformedCredential(f"empty {scheme} credential")
    return credential_cls(value)
