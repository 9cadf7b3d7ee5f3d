# FILE: coursestore/services/auth_service.py
import bcrypt


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_role(role: str | None) -> str:
    if not role or not role.strip():
        return "PARENT"
    return role.strip().upper()
