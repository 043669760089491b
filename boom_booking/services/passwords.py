from __future__ import annotations

import bcrypt

from boom_booking.core.config import BCRYPT_ROUNDS

BCRYPT_MAX_BYTES = 72
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def _normalize_password_for_bcrypt(password: str) -> bytes:
    """
    bcrypt só considera até 72 bytes.
    Bytes além disso são ignorados pelo algoritmo; truncamos antes para não quebrar no bcrypt 5.x.
    """
    pw = (password or "").encode("utf-8")
    return pw[:BCRYPT_MAX_BYTES]


def hash_password(password: str, *, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    return bcrypt.hashpw(_normalize_password_for_bcrypt(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash or not password_hash.startswith(BCRYPT_PREFIXES):
        return False
    try:
        return bcrypt.checkpw(_normalize_password_for_bcrypt(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def password_looks_hashed(value: str) -> bool:
    return value.startswith(BCRYPT_PREFIXES)
