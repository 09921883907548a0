import re
from typing import Optional
import hashlib
import secrets
import string
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TEMP_EMAIL_DOMAIN = "temp-fallah-smart.com"

_SEPARATORS = re.compile(r"[\s().\-]")


# =========================
# Verification codes
# =========================
def generate_verification_code() -> str:
    """Generate a 6-digit verification code (100000-999999)."""
    return str(100000 + secrets.randbelow(900000))


# =========================
# Phone numbers
# =========================
def normalize_phone_number(phone: str) -> str:
    """Canonical key for a phone number: trimmed, with a leading '+'."""
    phone = phone.strip()
    if not phone.startswith("+"):
        phone = f"+{phone}"
    return phone


def format_e164(phone: str) -> str:
    """Strip spaces, dashes, dots and parentheses, then ensure a leading '+'."""
    return normalize_phone_number(_SEPARATORS.sub("", phone))


def hash_phone_number(phone: str) -> str:
    """Hash phone number for logs (one-way hash)"""
    return hashlib.sha256(phone.encode()).hexdigest()


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


# =========================
# Passwords
# =========================
def generate_placeholder_password(length: int = 10) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def is_temp_email(email: Optional[str]) -> bool:
    return bool(email) and email.endswith(f"@{TEMP_EMAIL_DOMAIN}")
