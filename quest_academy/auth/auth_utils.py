# quest_academy/auth/auth_utils.py
from datetime import datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from quest_academy import config
from quest_academy.common.errors import AppError, ErrorCode

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def create_access_token(user_id: str, role: str) -> str:
    expires = datetime.utcnow() + timedelta(days=config.JWT_EXPIRES_DAYS)
    payload = {"user_id": user_id, "role": role, "exp": expires}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AppError.unauthorized("Token has expired", ErrorCode.AUTH_TOKEN_EXPIRED)
    except JWTError:
        raise AppError.unauthorized("Invalid token", ErrorCode.AUTH_TOKEN_INVALID)


def extract_bearer_token(authorization: str) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise AppError.unauthorized("Authentication token required", ErrorCode.AUTH_TOKEN_INVALID)
    return authorization.split(" ")[1]
