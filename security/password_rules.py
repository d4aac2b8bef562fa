import re
from typing import Tuple

from common.exceptions import ValidationError


def validate_password_strength(password: str) -> Tuple[bool, str]:
    """
    Validate password strength against required policy:
      - At least 8 characters
      - At least one uppercase letter
      - At least one lowercase letter
      - At least one digit
    Returns a tuple (is_valid, message). Message is empty when valid.
    """
    if not isinstance(password, str) or not password:
        return False, "Password is required."
    if len(password) < 8:
        return False, "Password must be at least 8 characters long."
    if not re.search(r"[A-Z]", password):
        return False, "Password must include at least one uppercase letter."
    if not re.search(r"[a-z]", password):
        return False, "Password must include at least one lowercase letter."
    if not re.search(r"[0-9]", password):
        return False, "Password must include at least one numeric digit."
    return True, ""


def assert_valid_new_password(password: str, confirm_password: str) -> None:
    """
    Raise ValidationError if the confirmation differs or the password is too weak.
    """
    if password != confirm_password:
        raise ValidationError("Password and confirmation do not match.")
    valid, message = validate_password_strength(password)
    if not valid:
        raise ValidationError(message)
