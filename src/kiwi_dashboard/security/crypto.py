import os

from cryptography.fernet import Fernet, InvalidToken

from ..errors import ConfigurationError

# every Fernet token starts with the version byte 0x80, base64 "gAAAAA"
FERNET_PREFIX = "gAAAAA"


def get_master_key() -> bytes:
    key = os.getenv("MASTER_KEY")
    if not key:
        raise ConfigurationError("Missing required environment variable: MASTER_KEY")
    return key.encode()


def get_fernet() -> Fernet:
    return Fernet(get_master_key())


def looks_encrypted(value: str) -> bool:
    return value.startswith(FERNET_PREFIX)


def encrypt_text(plain: str) -> str:
    return get_fernet().encrypt(plain.encode("utf-8")).decode("ascii")


def decrypt_text(token_enc: str) -> str | None:
    """Decrypt a stored blob; None when it was written under another key or is damaged."""
    try:
        return get_fernet().decrypt(token_enc.encode("ascii")).decode("utf-8")
    except (InvalidToken, ValueError):
        return None
