from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from fnb_erp.core.deps import get_db
from fnb_erp.core.errors import UnauthorizedError
from fnb_erp.core.security import ACCESS_TOKEN_TYPE, TokenValidationError, decode_token
from fnb_erp.models.tenant import Tenant
from fnb_erp.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    if not token:
        raise UnauthorizedError("Not authenticated")
    try:
        payload = decode_token(token, expected_type=ACCESS_TOKEN_TYPE)
    except TokenValidationError as exc:
        raise UnauthorizedError(str(exc)) from exc

    user_id = payload.get("sub")
    row = db.execute(
        select(User, Tenant)
        .join(Tenant, Tenant.id == User.tenant_id)
        .where(User.id == user_id)
    ).first()
    if not row:
        raise UnauthorizedError("User not found")
    user, tenant = row
    if not user.is_active or not tenant.is_active:
        raise UnauthorizedError("User is inactive")
    if payload.get("tid") and payload["tid"] != user.tenant_id:
        raise UnauthorizedError("Token tenant mismatch")
    request.state.tenant_id = user.tenant_id
    request.state.actor_user_id = user.id
    return user
