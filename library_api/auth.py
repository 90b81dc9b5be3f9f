import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .context import get_db, get_settings_dep
from .errors import AuthError, ConflictError, ForbiddenError, MissingCredentialsError, ServerError
from .models import Role, User
from .security import TokenClaims, create_access_token, decode_access_token, hash_password, verify_password
from .validators import check_not_blank

logger = logging.getLogger(__name__)

# raw header; the token is the second word of "Bearer <token>"
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


# User schemas
class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(min_length=6)
    role: Optional[Role] = None  # defaults to 'user'

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return check_not_blank(v)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


# Auth router
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201)
def register(user: UserCreate, db: Session = Depends(get_db)):
    try:
        if find_user_by_email(db, user.email):
            raise ConflictError("User with this email already exists")
        db_user = User(
            name=user.name,
            email=user.email,
            password=hash_password(user.password),
            role=user.role or Role.USER,
        )
        db.add(db_user)
        db.commit()
    except IntegrityError:
        # a concurrent registration took the email between check and insert
        db.rollback()
        raise ConflictError("User with this email already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error while registering user")
        raise ServerError("Server error while registering")
    logger.info(f"User registered: {user.email}")
    return {"message": "User registered successfully!"}


@router.post("/login")
def login(user: UserLogin, db: Session = Depends(get_db), settings: Settings = Depends(get_settings_dep)):
    try:
        db_user = find_user_by_email(db, user.email)
    except SQLAlchemyError:
        logger.exception("Error while logging in")
        raise ServerError("Server error while logging in")
    # same answer for unknown email and wrong password
    if not db_user or not verify_password(user.password, db_user.password):
        raise AuthError("Invalid email or password")
    token = create_access_token(db_user.id, db_user.role, settings)
    logger.info(f"User logged in: {user.email}")
    return {"message": "Login successful!", "token": token}


# Dependency to get current user from the bearer token
def get_current_user(
    authorization: Optional[str] = Depends(authorization_header),
    settings: Settings = Depends(get_settings_dep),
) -> TokenClaims:
    parts = (authorization or "").split(" ")
    if len(parts) < 2 or not parts[1]:
        raise MissingCredentialsError()
    return decode_access_token(parts[1], settings)


# Role-based dependency, runs only after authentication succeeded
def admin_required(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
    if not user.is_admin:
        raise ForbiddenError()
    return user
