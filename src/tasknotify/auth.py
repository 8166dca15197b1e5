from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from .context import AppContext
from .deps import get_context
from .errors import DirectoryError, OwnerNotFoundError

_security = HTTPBasic(auto_error=False)


def _unauthorized(detail: str, scheme: Optional[str] = None) -> HTTPException:
    headers = {"WWW-Authenticate": scheme} if scheme else None
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers=headers)


# PUBLIC_INTERFACE
def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    context: AppContext = Depends(get_context),
) -> str:
    """
    Identify the caller.

    The gateway in front of this service authenticates the user and forwards
    the account id in the X-User-Id header; here we only check the account
    still exists in the directory.

    Raises:
        HTTPException(401) if the header is missing/blank or the account is unknown.
        HTTPException(503) if the directory lookup failed.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise _unauthorized("Not authenticated")
    try:
        context.directory.get_user(user_id)
    except OwnerNotFoundError:
        raise _unauthorized("Unknown user") from None
    except DirectoryError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Directory unavailable") from None
    return user_id


# PUBLIC_INTERFACE
def require_operator(
    creds: Optional[HTTPBasicCredentials] = Depends(_security),
    context: AppContext = Depends(get_context),
) -> None:
    """
    Guard operator endpoints (manual sweep trigger) with HTTP Basic Auth when
    ENABLE_BASIC_AUTH is on. When disabled, this dependency is a no-op.

    Raises:
        HTTPException(401) if credentials are missing, invalid, or not configured.
    """
    settings = context.settings
    if not settings.enable_basic_auth:
        return None

    if creds is None or creds.username is None or creds.password is None:
        raise _unauthorized("Not authenticated", "Basic")

    expected_user = settings.basic_auth_username
    expected_pass = settings.basic_auth_password
    if expected_user is None or expected_pass is None:
        # Misconfiguration: auth enabled but username/password not provided
        raise _unauthorized("Server authentication not configured", "Basic")

    user_ok = secrets.compare_digest(creds.username.encode(), expected_user.encode())
    pass_ok = secrets.compare_digest(creds.password.encode(), expected_pass.encode())
    if not (user_ok and pass_ok):
        raise _unauthorized("Invalid authentication credentials", "Basic")
    return None
