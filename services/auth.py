from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from shared.config import config
from shared.enums import UserRole
from shared.models import Identity

# Tokens are issued by the institution's login service; this backend only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")


def create_access_token(data: dict[str, str]) -> str:
    """Create JWT access token."""
    return jwt.encode(data, config.get("secret_key"), algorithm=config.get("jwt_algorithm"))


def decode_identity(token: str) -> Identity:
    """Decode a bearer token into the caller's identity.

    The subject is read from ``sub`` with ``userId`` as a fallback claim.
    """
    try:
        payload = jwt.decode(token, config.get("secret_key"), algorithms=[config.get("jwt_algorithm")])
    except JWTError as e:
        raise HTTPException(status_code=401, detail="Invalid token") from e

    subject = payload.get("sub") or payload.get("userId")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        return Identity(
            id=subject,
            role=UserRole(payload.get("role", UserRole.STUDENT.value)),
            email=payload.get("email") or "",
            name=payload.get("name") or "",
        )
    except (ValueError, ValidationError) as e:
        raise HTTPException(status_code=401, detail="Invalid token claims") from e


async def get_current_identity(token: str = Depends(oauth2_scheme)) -> Identity:
    """Resolve the authenticated identity for a request."""
    return decode_identity(token)
