import secrets

from fastapi import Header, HTTPException, status

from golfcourse.config import settings
from golfcourse.core.exceptions import forbidden


def verify_admin_token(token: str | None) -> bool:
    """Check a token against the configured admin token."""
    if not settings.admin_token or not token:
        return False
    return secrets.compare_digest(token, settings.admin_token)


async def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """Dependency guarding organiser-only endpoints."""
    if not settings.admin_token:
        raise forbidden("Settings updates are disabled")
    if not verify_admin_token(x_admin_token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
        )
