from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
import structlog
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from ..config import settings
from ..utils.timeutils import utcnow

logger = structlog.get_logger()

# Password hashing for protected links
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)

# bcrypt only looks at the first 72 bytes and bcrypt>=5 refuses anything longer
PASSWORD_MAX_BYTES = 72

# Bearer tokens are issued by the account service; only the subject is read here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception as e:
        # passlib cannot drive bcrypt >= 4.1; talk to bcrypt directly
        logger.debug("passlib verify failed, using bcrypt", error=str(e))
        try:
            return bcrypt.checkpw(
                plain_password.encode('utf-8'),
                hashed_password.encode('utf-8')
            )
        except ValueError:
            return False


def get_password_hash(password: str) -> str:
    """Hash a password"""
    try:
        return pwd_context.hash(password)
    except Exception as e:
        logger.debug("passlib hash failed, using bcrypt", error=str(e))
        hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
        return hashed.decode('utf-8')


def create_access_token(owner_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token for a link owner.

    Args:
        owner_id: Opaque owner identifier, stored as the token subject
        expires_delta: Token expiration time

    Returns:
        Encoded JWT token
    """
    if expires_delta:
        expire = utcnow() + expires_delta
    else:
        expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {"sub": owner_id, "exp": expire}

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_owner_id(token: str) -> Optional[str]:
    """Return the token subject, or None if the token is invalid or expired"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except InvalidTokenError:
        return None
    return payload.get("sub")


async def get_current_owner(token: str = Depends(oauth2_scheme)) -> str:
    """
    Get the authenticated owner id from the bearer token.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    owner_id = decode_owner_id(token)

    if owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return owner_id


async def get_optional_owner(token: Optional[str] = Depends(optional_oauth2_scheme)) -> Optional[str]:
    """Owner id when a valid token is sent, None for anonymous callers"""
    if not token:
        return None

    owner_id = decode_owner_id(token)

    if owner_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return owner_id
