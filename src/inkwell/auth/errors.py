"""Auth failures as HTTP errors.

Learn: 401 and 403 are different answers. 401 means "we don't know who
you are" and never says why (missing vs. invalid credentials look the
same to the caller). 403 means "we know who you are, and your role is
not enough" and names the role class that would be.
"""

from fastapi import HTTPException

NOT_AUTHENTICATED = "Not authenticated"


class AuthenticationRequired(HTTPException):
    """No usable credential on either channel (401)."""

    def __init__(self):
        super().__init__(
            status_code=401,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationDenied(HTTPException):
    """Identity resolved, role insufficient (403)."""

    def __init__(self, detail: str):
        super().__init__(status_code=403, detail=detail)
