from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 12


# bcrypt only considers the first 72 bytes and newer releases raise past that.
def _normalize_password_for_bcrypt(password: str) -> bytes:
    pw = (password or "").encode("utf-8")
    if len(pw) <= 72:
        return pw
    return pw[:72]


def hash_password(password: str) -> str:
    pw = _normalize_password_for_bcrypt(password)
    hashed = bcrypt.hashpw(pw, bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_normalize_password_for_bcrypt(plain_password), password_hash.encode("utf-8"))
    except ValueError:
        return False
