import os
from datetime import timedelta

import jwt
from passlib.context import CryptContext

from database import now_utc
from errors import Unauthenticated

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"
TOKEN_TTL = timedelta(hours=24)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def token_secret() -> str:
    return os.getenv("JWT_SECRET", "haritha-hub-development-signing-secret")


def create_token(user_id: str) -> str:
    payload = {"id": user_id, "exp": now_utc() + TOKEN_TTL}
    return jwt.encode(payload, token_secret(), algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> str:
    """Return the user id carried by a session token."""
    try:
        payload = jwt.decode(token, token_secret(), algorithms=[TOKEN_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")
    user_id = payload.get("id")
    if not user_id:
        raise Unauthenticated("Invalid token")
    return user_id
