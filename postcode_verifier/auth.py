"""
Authentication module with JWT sessions and password hashing.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import asyncpg
import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel, EmailStr, Field, field_validator

from postcode_verifier.config import settings
from postcode_verifier.database import Database

logger = logging.getLogger(__name__)

# Bearer header is optional: browsers authenticate with the session cookie
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/auth/login/form", auto_error=False)

MIN_PASSWORD_LENGTH = 8
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


class UsernameTakenError(Exception):
    """Raised when registering a username that already exists."""


# ============================================================================
# Models
# ============================================================================

class Token(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenData(BaseModel):
    """Data extracted from JWT token."""
    username: str
    exp: Optional[datetime] = None


class User(BaseModel):
    """Authenticated user."""
    username: str
    created_at: Optional[datetime] = None


class UserInDB(User):
    """User model with hashed password."""
    password_hash: str


class LoginRequest(BaseModel):
    """Login request body."""
    username: str
    password: str

    @field_validator('username')
    @classmethod
    def normalize(cls, v: str) -> str:
        v = normalize_username(v)
        if not v:
            raise ValueError('Username and password cannot be empty')
        return v

    @field_validator('password')
    @classmethod
    def strip_password(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Username and password cannot be empty')
        return v


class RegisterRequest(BaseModel):
    """Registration request body. The username is an email address."""
    username: EmailStr = Field(..., examples=["someone@example.com"])
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator('username', mode='before')
    @classmethod
    def normalize_email(cls, v):
        return normalize_username(v) if isinstance(v, str) else v

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        v = v.strip()
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long')
        if len(v.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes long')
        return v


def normalize_username(raw: Optional[str]) -> str:
    """Usernames are emails compared case-insensitively."""
    return (raw or "").strip().lower()


# ============================================================================
# Password Functions
# ============================================================================

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash using bcrypt."""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except Exception as e:
        logger.error(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


# ============================================================================
# JWT Functions
# ============================================================================

def create_access_token(username: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed session token.

    Args:
        username: Normalized username to embed in the token
        expires_delta: Token lifetime (defaults to ``jwt_expire_minutes``)

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expire_minutes)

    expire = datetime.now(timezone.utc) + expires_delta

    return jwt.encode(
        {"username": username, "exp": expire},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a session token.

    Args:
        token: JWT token string

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        return None

    username = payload.get("username")
    if not isinstance(username, str) or not username:
        return None

    return TokenData(username=username, exp=payload.get("exp"))


# ============================================================================
# User Database Functions
# ============================================================================

async def get_user_by_username(db: Database, username: str) -> Optional[UserInDB]:
    """Fetch user from database by username."""
    row = await db.fetchrow(
        """
        SELECT username, password_hash, created_at
        FROM users
        WHERE username = $1
        """,
        username
    )

    if row:
        return UserInDB(
            username=row['username'],
            password_hash=row['password_hash'],
            created_at=row['created_at']
        )
    return None


async def authenticate_user(db: Database, username: str, password: str) -> Optional[User]:
    """
    Authenticate user with username and password.

    Returns:
        User object if authenticated, None otherwise
    """
    user = await get_user_by_username(db, username)

    if not user:
        logger.warning(f"Login attempt for non-existent user: {username}")
        return None

    if not verify_password(password, user.password_hash):
        logger.warning(f"Invalid password for user: {username}")
        return None

    logger.info(f"User authenticated: {username}")
    return User(username=user.username, created_at=user.created_at)


async def create_user(db: Database, username: str, password: str) -> User:
    """
    Create a new user.

    Raises:
        UsernameTakenError: If the username is already registered
    """
    password_hash = get_password_hash(password)

    try:
        row = await db.fetchrow(
            """
            INSERT INTO users (username, password_hash, created_at)
            VALUES ($1, $2, now())
            RETURNING username, created_at
            """,
            username,
            password_hash
        )
    except asyncpg.UniqueViolationError:
        raise UsernameTakenError(username)

    logger.info(f"Created new user: {username}")

    return User(username=row['username'], created_at=row['created_at'])


# ============================================================================
# Dependencies
# ============================================================================

async def get_current_user(
    request: Request,
    bearer_token: Optional[str] = Depends(oauth2_scheme)
) -> User:
    """
    Dependency to get the current user from the session cookie or a
    Bearer token. The cookie wins when it decodes; a stale cookie falls
    back to the header. Sessions are stateless; no database lookup is made.

    Raises:
        HTTPException: If no valid token is presented
    """
    token_data = None
    for token in (request.cookies.get(settings.auth_cookie_name), bearer_token):
        if token:
            token_data = decode_access_token(token)
            if token_data is not None:
                break

    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return User(username=normalize_username(token_data.username))
