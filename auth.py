"""
Token auth and studio scoping shared by all routers.

Tokens are HS256 JWTs carrying ``id`` and ``role`` (``manager`` or
``studio_owner``). Managers see every studio; a studio owner only sees the
studio they own.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session

import config
from database import get_session
from models import Customer, Studio

MANAGER = "manager"
STUDIO_OWNER = "studio_owner"
STAFF_ROLES = (MANAGER, STUDIO_OWNER)


# Token Auth Dependency
def verify_token(request: Request) -> dict:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing token")
    token = auth.split(" ")[1]
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(status_code=403, detail="Invalid token")


def require_staff(token: dict = Depends(verify_token)) -> dict:
    if token.get("role") not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Access denied - studio owner or manager only")
    return token


def require_manager(token: dict = Depends(verify_token)) -> dict:
    if token.get("role") != MANAGER:
        raise HTTPException(status_code=403, detail="Access denied - manager only")
    return token


def owned_studio_id(db: Session, token: dict) -> Optional[int]:
    """
    Studio the caller is limited to; None for managers (all studios).
    """
    if token.get("role") == MANAGER:
        return None
    if token.get("studio_id"):
        return int(token["studio_id"])
    studio = (
        db.query(Studio)
        .filter(Studio.owner_id == token.get("id"), Studio.is_active.is_(True))
        .first()
    )
    if not studio:
        raise HTTPException(status_code=404, detail="No studio found for this user")
    return studio.id


def get_accessible_customer(db: Session, token: dict, customer_id: int) -> Customer:
    """Load a customer, or 404 when missing or outside the caller's studio."""
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    studio_id = owned_studio_id(db, token)
    if studio_id is not None and customer.studio_id != studio_id:
        raise HTTPException(status_code=404, detail="Customer not found for this studio")
    return customer

