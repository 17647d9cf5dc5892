import asyncio
import hashlib
import secrets

from passlib.context import CryptContext
from pydantic import EmailStr

from loggers import get_logger
from src.main.config import config

logger = get_logger(__name__)


class PasswordHasher:
    """
    Pluggable password-hash primitive.

    Wraps a passlib ``CryptContext``; verification runs in a worker thread so
    the event loop is not blocked by the key-derivation cost.
    """

    def __init__(self, context: CryptContext) -> None:
        self.context = context

    def hash(self, password: str) -> str:
        return self.context.hash(password)

    async def verify(self, plain_password: str, hashed_password: str) -> bool:
        try:
            return await asyncio.to_thread(
                self.context.verify, plain_password, hashed_password
            )
        except ValueError:
            return False


pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__memory_cost=config.auth.PASSWORD_HASH_MEMORY_KIB,
    argon2__time_cost=config.auth.PASSWORD_HASH_COST,
    argon2__parallelism=2,
)

password_hasher = PasswordHasher(pwd_context)


def hash_password(password: str) -> str:
    """
    Hashes the provided password using Argon2 with the configured parameters.

    :param password: The plaintext password as a string.
    :return: The hashed password as a string.
    """
    return password_hasher.hash(password)


async def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifies that a text password matches its hashed counterpart.

    :param plain_password: The text password provided by the user.
    :param hashed_password: The stored hashed password.
    :return: True if the passwords match, False otherwise.
    """
    return await password_hasher.verify(plain_password, hashed_password)


def generate_token_id(num_bytes: int = 16) -> str:
    """Random hex identifier used for JTIs, token families and session ids."""
    return secrets.token_hex(num_bytes)


def mask_email(email: str | EmailStr) -> str:
    """
    Masks an email address by replacing part of the local and domain parts
    with asterisks.
    Mask pattern: ab***@cd***
    """
    try:
        email_str = str(email)
        local, domain = email_str.split("@", 1)
        masked_local = (local[:2] + "***") if local else "*****"
        masked_domain = (domain[:2] + "***") if domain else "*****"
        return f"{masked_local}@{masked_domain}"
    except ValueError:
        return "***"


def token_fingerprint(token: str) -> str:
    """Stable, non-reversible short id for a raw token, safe to log."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


def normalize_email(email: str) -> str:
    """Normalize an email address."""
    return email.strip().lower()
