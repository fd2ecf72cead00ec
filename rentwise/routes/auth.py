from __future__ import annotations

import logging
import os
import time
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Header, Response, status
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..access import Principal
from ..db import get_db
from .. import models, schemas
from ..rate_limit import rate_limit

router = APIRouter()
logger = logging.getLogger("rentwise.auth")

# Security primitives
JWT_SECRET: str = os.getenv("RENTWISE_JWT_SECRET", "dev-secret-change-me")
JWT_ALG: str = "HS256"
JWT_TTL_SECONDS: int = 60 * 60 * 24 * 7  # 7 days
# bcrypt_sha256 sidesteps bcrypt's 72-byte password limit
pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")


# ----------------
# Helpers
# ----------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(*, user: models.User) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "iat": now,
        "exp": now + JWT_TTL_SECONDS,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


def principal_for(user: models.User) -> Optional[Principal]:
    # Role comes from the profile, so an identity without a profile cannot act
    profile = user.profile
    if profile is None:
        return None
    return Principal(id=user.id, email=user.email, role=profile.role, full_name=profile.full_name)


def load_principal(db: Session, token: str) -> Principal:
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    user = db.get(models.User, int(user_id))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    principal = principal_for(user)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Profile not found")
    return principal


# ----------------
# Dependencies
# ----------------
def bearer_token_from_auth_header(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header missing")
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization header")
    return parts[1]


def get_current_principal(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    token = bearer_token_from_auth_header(authorization)
    return load_principal(db, token)


def get_current_principal_optional(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Optional[Principal]:
    """
    Returns the current principal if a valid Bearer token is present, otherwise None.
    Used by public pages that show extra affordances to signed-in users.
    """
    if not authorization:
        return None
    try:
        token = bearer_token_from_auth_header(authorization)
        return load_principal(db, token)
    except HTTPException:
        # Treat invalid/expired tokens as anonymous for optional auth
        return None


def require_landlord(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_landlord:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Landlord role required")
    return principal


# ----------------
# Routes
# ----------------
@router.post(
    "/auth/signup",
    response_model=schemas.TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
def signup(payload: schemas.UserCreate, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    # Email is normalized by the schema validator; enforce uniqueness
    email = payload.email
    existing = db.query(models.User).filter(models.User.email == email).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    # Identity and profile are created in one transaction so a user never exists without a role
    user = models.User(email=email, password_hash=hash_password(payload.password))
    try:
        db.add(user)
        db.flush()
        profile = models.Profile(
            id=user.id,
            role=payload.role,
            full_name=payload.full_name,
            phone=payload.phone,
        )
        db.add(profile)
        db.commit()
    except IntegrityError as exc:
        # A concurrent signup claimed the email between the lookup and the insert
        db.rollback()
        logger.warning("auth.signup_conflict", extra={"email": email})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered") from exc
    db.refresh(user)
    db.refresh(profile)

    logger.info("auth.signup", extra={"user_id": user.id, "role": profile.role})
    token = create_access_token(user=user)
    return schemas.TokenResponse(
        access_token=token,
        user=schemas.UserRead.model_validate(user),
        profile=schemas.ProfileRead.model_validate(profile),
    )


@router.post(
    "/auth/login",
    response_model=schemas.TokenResponse,
    dependencies=[Depends(rate_limit("login"))],
)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)) -> schemas.TokenResponse:
    email = payload.email
    user = db.query(models.User).filter(models.User.email == email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if user.profile is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Profile not found")

    token = create_access_token(user=user)
    return schemas.TokenResponse(
        access_token=token,
        user=schemas.UserRead.model_validate(user),
        profile=schemas.ProfileRead.model_validate(user.profile),
    )


@router.get("/auth/session", response_model=Optional[schemas.SessionRead])
def current_session(
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_current_principal_optional),
) -> Optional[schemas.SessionRead]:
    """Return the signed-in user and profile, or null for anonymous callers."""
    if principal is None:
        return None
    user = db.get(models.User, principal.id)
    return schemas.SessionRead(
        user=schemas.UserRead.model_validate(user),
        profile=schemas.ProfileRead.model_validate(user.profile),
    )


@router.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(principal: Principal = Depends(get_current_principal)) -> Response:
    # Tokens are stateless; signing out means the client discards its token
    logger.info("auth.logout", extra={"user_id": principal.id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
