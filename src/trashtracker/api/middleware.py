"""Optional Bearer-token protection for the screen and classification routes."""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

_bearer_scheme = HTTPBearer(auto_error=False)


def _token_matches(token: str, expected: str) -> bool:
    return secrets.compare_digest(token.encode(), expected.encode())


async def verify_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Reject requests without 'Authorization: Bearer <TRASHTRACKER_API_KEY>'.

    A no-op while no API key is configured.
    """
    expected: str | None = request.app.state.settings.api_key
    if expected is None:
        return

    if credentials is None or not _token_matches(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
