"""
Bearer-token verification.

Callers authenticate with ``Authorization: Bearer <Firebase ID token>``.
The verifier turns the token into a ``Principal`` or raises
``Unauthenticated`` with a reason the client can act on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from myblog.errors import ServiceUnavailable, Unauthenticated

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Principal:
    """Verified identity of the caller."""

    id: str
    email: Optional[str] = None
    email_verified: bool = False


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Principal:
        ...


def parse_bearer(header: Optional[str]) -> str:
    """Extract the token from an Authorization header value."""
    if not header or not header.startswith(BEARER_PREFIX):
        raise Unauthenticated("No valid authorization header provided")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated("No ID token provided")
    return token


@dataclass
class StaticTokenVerifier:
    """Looks tokens up in a fixed table. Used for development and tests."""

    principals: dict[str, Principal]

    @classmethod
    def from_uids(cls, tokens: dict[str, str]) -> "StaticTokenVerifier":
        return cls({token: Principal(id=uid) for token, uid in tokens.items()})

    def verify(self, token: str) -> Principal:
        principal = self.principals.get(token)
        if principal is None:
            raise Unauthenticated("Invalid ID token")
        return principal


class FirebaseIdentityVerifier:
    """Verifies Firebase Auth ID tokens with the Admin SDK."""

    def __init__(self, app: firebase_admin.App, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked

    def verify(self, token: str) -> Principal:
        try:
            decoded = firebase_auth.verify_id_token(
                token, app=self.app, check_revoked=self.check_revoked
            )
        except firebase_auth.ExpiredIdTokenError:
            raise Unauthenticated("ID token expired")
        except firebase_auth.RevokedIdTokenError:
            raise Unauthenticated("ID token revoked")
        except firebase_auth.InvalidIdTokenError:
            raise Unauthenticated("Invalid ID token")
        except ValueError:
            raise Unauthenticated("Invalid ID token format")
        except firebase_auth.CertificateFetchError as exc:
            logger.error("Could not fetch token signing certificates: %s", exc)
            raise ServiceUnavailable("Authentication service unavailable")
        except firebase_exceptions.FirebaseError as exc:
            logger.error("Token verification failed: %s", exc)
            raise ServiceUnavailable("Authentication service unavailable")

        return Principal(
            id=decoded["uid"],
            email=decoded.get("email"),
            email_verified=bool(decoded.get("email_verified", False)),
        )
