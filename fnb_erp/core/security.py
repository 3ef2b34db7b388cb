"""
Bearer token handling.

Access tokens are HS256 JWTs minted by the identity provider that fronts this
service. ``sub`` is the user id; an optional ``tid`` claim pins the token to a
tenant and is checked against the user's tenant on every request.
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt

from fnb_erp.core.config import settings

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"


class TokenValidationError(ValueError):
    pass


def create_token(
    subject: str,
    expires_delta: timedelta,
    token_type: str,
    *,
    tenant_id: str | None = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "type": token_type,
        "jti": uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    if tenant_id:
        claims["tid"] = tenant_id
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str, *, expected_type: str | None = None) -> dict:
    try:
        claims = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[ALGORITHM],
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        raise TokenValidationError("Invalid token") from exc

    if not claims.get("sub"):
        raise TokenValidationError("Invalid token subject")
    if expected_type and claims.get("type") != expected_type:
        raise TokenValidationError("Invalid token type")
    return claims


def create_access_token(user_id: str, tenant_id: str | None = None) -> str:
    return create_token(
        user_id,
        timedelta(minutes=settings.access_token_expire_minutes),
        ACCESS_TOKEN_TYPE,
        tenant_id=tenant_id,
    )
