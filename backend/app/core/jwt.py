"""
Identity token helpers.

Bearer tokens are issued by the identity provider and carry the caller's
email in `sub`. `create_identity_token` serves local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from backend.app.core.config import settings


def create_identity_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a token whose subject is `email`."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": email,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def read_identity(token: str) -> Optional[str]:
    """
    Verify `token` and return the lower-cased subject email.

    Returns None for a bad signature, an expired token or a missing subject.
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    return subject.strip().lower()
