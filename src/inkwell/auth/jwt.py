"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
The token carries the full identity snapshot (id, username, email, role)
so a request presenting only a token needs no lookup at all.
There is no revocation list: a token is valid until it expires.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from inkwell.config import settings

# Claims every access token must carry.
REQUIRED_CLAIMS = ["sub", "username", "email", "role", "exp", "iat"]


class TokenError(Exception):
    """Raised when token creation/verification fails."""

    def __init__(self, message: str, reason: str = "invalid"):
        super().__init__(message)
        self.reason = reason


def create_access_token(
    user_id: str,
    username: str,
    email: str,
    role: str,
    expires_days: Optional[int] = None,
    secret: Optional[str] = None,
) -> str:
    """Create a signed access token carrying the identity snapshot."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(days=expires_days or settings.token_expire_days)
    payload = {
        "sub": user_id,
        "username": username,
        "email": email,
        "role": role,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(
        payload, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


def verify_token(token: str, secret: Optional[str] = None) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure; `reason` is one of
    "expired", "bad_signature", "malformed", "invalid".
    """
    try:
        payload = jwt.decode(
            token,
            secret or settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired", reason="expired")
    except jwt.InvalidSignatureError:
        raise TokenError("Token signature mismatch", reason="bad_signature")
    except jwt.DecodeError as e:
        raise TokenError(f"Malformed token: {e}", reason="malformed")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}", reason="invalid")

    if payload.get("type") != "access":
        raise TokenError("Not an access token", reason="invalid")
    return payload
