"""Bearer-token verification for tokens issued by the hosted auth provider.

The provider signs access tokens with HS256 using the project JWT secret
and sets ``aud`` to ``authenticated``.  Only ``sub`` (the user id) and
``email`` are consumed; roles live on the ``profiles`` row.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import jwt
from pydantic import BaseModel, SecretStr

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"


class TokenClaims(BaseModel):
    """Validated subset of an access token's claims."""

    sub: str
    email: str | None = None
    exp: int | None = None
    role: str | None = None


class TokenVerifier:
    """Validate provider-issued JWTs.

    Parameters
    ----------
    secret:
        Shared HS256 secret.
    audience:
        Expected ``aud`` claim.
    """

    def __init__(self, secret: SecretStr, audience: str = "authenticated") -> None:
        self._secret = secret
        self._audience = audience

    def validate_token(self, token: str) -> TokenClaims:
        """Decode and validate *token*.

        Raises
        ------
        PermissionError
            If the token is expired, malformed, signed with another key,
            addressed to another audience, or lacks a subject.
        """
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret.get_secret_value(),
                algorithms=[_ALGORITHM],
                audience=self._audience,
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise PermissionError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise PermissionError(str(exc)) from exc

        if not payload.get("sub"):
            raise PermissionError("Token has no subject")
        return TokenClaims.model_validate(payload)

    def issue_token(self, sub: str, email: str | None = None, ttl_seconds: int = 3600) -> str:
        """Sign a token with the same secret.  Used by local tooling and tests."""
        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": sub,
            "aud": self._audience,
            "iat": now,
            "exp": now + ttl_seconds,
            "role": "authenticated",
        }
        if email is not None:
            payload["email"] = email
        return jwt.encode(payload, self._secret.get_secret_value(), algorithm=_ALGORITHM)
