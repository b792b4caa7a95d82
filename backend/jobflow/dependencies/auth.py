# jobflow/dependencies/auth.py
from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from jobflow.core.security import verify_token_purpose

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_identity_key(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """
    Validates:
      - Authorization: Bearer <token>
      - token signature + exp + purpose
    Returns:
      - the stable identity key (token subject) that scopes every row
    """
    if not creds or creds.scheme.lower() != "bearer":
        raise _unauthorized("Missing Authorization header")

    try:
        payload = verify_token_purpose(creds.credentials, expected_purpose="access")
    except ValueError:
        raise _unauthorized("Invalid or expired token")
    except JWTError:
        raise _unauthorized("Invalid or expired token")

    key = str(payload.get("sub") or "").strip()
    if not key:
        raise _unauthorized("Invalid or expired token")
    return key
