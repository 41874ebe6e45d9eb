# lvcert/core/security_password.py
from __future__ import annotations
import secrets
from passlib.context import CryptContext

pwd_context = CryptContext(
    schemes=["argon2", "bcrypt_sha256", "bcrypt"],
    deprecated="auto",
    argon2__time_cost=2,
    argon2__memory_cost=19456,
    argon2__parallelism=1,
)

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)

def unusable_password_hash() -> str:
    # conta técnica (ator do sistema): nunca faz login
    return pwd_context.hash(secrets.token_urlsafe(32))

