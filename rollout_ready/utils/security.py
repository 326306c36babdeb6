# rollout_ready/utils/security.py
import secrets
import string
import uuid
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from rollout_ready.config.security import SecurityConfig

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=SecurityConfig.PASSWORDS['bcrypt_rounds'],
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognized or malformed hash
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a session token; ``jti`` keeps two tokens issued in the same second distinct."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(days=SecurityConfig.SESSION['duration_days']))
    to_encode.update({"exp": expire, "jti": uuid.uuid4().hex})
    return jwt.encode(
        to_encode,
        SecurityConfig.SESSION['secret_key'],
        algorithm=SecurityConfig.SESSION['algorithm'],
    )


def verify_token(token: str) -> Optional[dict]:
    """Verify JWT token and return payload without raising exceptions"""
    try:
        return jwt.decode(
            token,
            SecurityConfig.SESSION['secret_key'],
            algorithms=[SecurityConfig.SESSION['algorithm']],
        )
    except JWTError:
        return None


def generate_random_password(length: int = None) -> str:
    """Random password with at least one upper, lower, digit and symbol."""
    length = length or SecurityConfig.PASSWORDS['random_length']
    symbols = "!@#$%^&*"
    charset = string.ascii_letters + string.digits + symbols

    chars = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice(symbols),
    ]
    chars.extend(secrets.choice(charset) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
