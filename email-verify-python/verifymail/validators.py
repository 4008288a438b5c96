# validators.py
import re

# Forma plausible de correo: local@dominio.tld, sin espacios ni '@' repetidos.
EMAIL_REGEX = re.compile(r"[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+")
CODE_REGEX = re.compile(r"[0-9]{6}")

MAX_EMAIL_LENGTH = 254


def normalize_email(email):
    """Quita espacios alrededor y pasa a minúsculas; devuelve '' si no es str."""
    if not isinstance(email, str):
        return ""
    return email.strip().lower()


def validate_email(email):
    """Valida que el correo (ya normalizado) tenga una forma plausible."""
    if not email:
        return False, "Email required"
    if len(email) > MAX_EMAIL_LENGTH:
        return False, "Invalid email address"

    local = email.rpartition("@")[0]
    if len(local) > 64 or ".." in email or local.startswith(".") or local.endswith("."):
        return False, "Invalid email address"

    if not EMAIL_REGEX.fullmatch(email):
        return False, "Invalid email address"

    return True, "Valid email"


def validate_code(code):
    """
    Valida que el código tenga exactamente 6 dígitos ASCII.
    No acepta dígitos Unicode que str.isdigit() sí aceptaría.
    """
    if not isinstance(code, str) or not CODE_REGEX.fullmatch(code):
        return False, "Code must be exactly 6 digits"
    return True, "Valid code"
