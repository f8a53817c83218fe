"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies that resolve the caller for protected routes

Every dependency returns an AuthenticatedCaller which routes pass explicitly
into the service layer; nothing is stashed on the request.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from uniform.core.config import get_settings
from uniform.core.errors import AuthenticationError, Forbidden
from uniform.db.database import execute_raw_sql
from uniform.utils.dates import utcnow

logger = logging.getLogger(__name__)

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; missing headers are reported as 401 by get_current_caller
bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, Enum):
    student = "STUDENT"
    institution_admin = "INSTITUTION_ADMIN"
    system_admin = "SYSTEM_ADMIN"


@dataclass(frozen=True)
class AuthenticatedCaller:
    id: int
    role: Role
    email: str
    institution_id: Optional[int] = None


# role -> (table, id column)
_ROLE_TABLES = {
    Role.student: ("students", "student_id"),
    Role.institution_admin: ("admins", "admin_id"),
    Role.system_admin: ("system_admins", "system_admin_id"),
}


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_caller_token(caller_id: int, email: str, role: Role) -> str:
    return create_access_token({"sub": str(caller_id), "email": email, "role": role.value})


def decode_token(token: str) -> dict:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired. Please log in again")
    except JWTError:
        raise AuthenticationError("Invalid token")


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> AuthenticatedCaller:
    """
    FastAPI dependency - Resolve the authenticated caller from the bearer token.

    Usage:
        @router.get("/protected")
        async def route(caller: AuthenticatedCaller = Depends(get_current_caller)):
            return caller
    """
    if credentials is None:
        raise AuthenticationError("Authorization header is required")

    payload = decode_token(credentials.credentials)
    subject = payload.get("sub")
    try:
        role = Role(payload.get("role"))
        caller_id = int(subject)
    except (TypeError, ValueError):
        logger.debug("Rejected token with malformed claims: sub=%r", subject)
        raise AuthenticationError("Invalid token")

    # Verify the account still exists
    table, id_column = _ROLE_TABLES[role]
    extra = ", institution_id" if role is Role.institution_admin else ""
    rows = execute_raw_sql(
        f"SELECT {id_column} AS id, email{extra} FROM {table} WHERE {id_column} = :id",
        {"id": caller_id}
    )
    if not rows:
        raise AuthenticationError("Account no longer exists")

    row = rows[0]
    return AuthenticatedCaller(
        id=row["id"],
        role=role,
        email=row["email"],
        institution_id=row.get("institution_id"),
    )


async def get_current_student(
    caller: AuthenticatedCaller = Depends(get_current_caller)
) -> AuthenticatedCaller:
    """Dependency - Require student role."""
    if caller.role is not Role.student:
        raise Forbidden("Students only")
    return caller


async def get_current_institution_admin(
    caller: AuthenticatedCaller = Depends(get_current_caller)
) -> AuthenticatedCaller:
    """Dependency - Require an institution admin that is assigned to an institution."""
    if caller.role is not Role.institution_admin:
        raise Forbidden("Institution admins only")
    if caller.institution_id is None:
        raise Forbidden("Not authorized: no institution assigned")
    return caller


async def get_current_system_admin(
    caller: AuthenticatedCaller = Depends(get_current_caller)
) -> AuthenticatedCaller:
    """Dependency - Require system admin role."""
    if caller.role is not Role.system_admin:
        raise Forbidden("System admins only")
    return caller
