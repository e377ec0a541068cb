import logging

from fastapi import Depends, Header, HTTPException
from jose import jwt
from sqlalchemy.orm import Session

from storefront import crud
from storefront.config import get_settings
from storefront.database import get_db
from storefront.models import Role, User

logger = logging.getLogger(__name__)


def verify_token(authorization: str = Header(None)) -> dict:
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("Unsupported authorization scheme")
        claims = jwt.decode(token, get_settings().jwt_secret, algorithms=["HS256"])
        if not claims.get("sub"):
            raise ValueError("Token has no subject")
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or missing token")
    return claims


def get_current_user(claims: dict = Depends(verify_token), db: Session = Depends(get_db)) -> User:
    user = crud.get_user_by_open_id(db, claims["sub"])
    if user is None:
        # first sign-in
        user = crud.upsert_user(
            db,
            open_id=claims["sub"],
            name=claims.get("name"),
            email=claims.get("email"),
            login_method=claims.get("login_method"),
            owner_open_id=get_settings().owner_open_id,
        )
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != Role.ADMIN.value:
        logger.warning("User %s denied admin access", user.id)
        raise HTTPException(status_code=403, detail="Unauthorized: Admin access required")
    return user
