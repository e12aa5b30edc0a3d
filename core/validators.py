"""
Password policy validators, wired up through AUTH_PASSWORD_VALIDATORS.
"""
import re

from django.core.exceptions import ValidationError


class MinimumLengthValidator:
    def __init__(self, min_length=8):
        self.min_length = min_length

    def validate(self, password, user=None):
        if len(password or '') < self.min_length:
            raise ValidationError(
                f"Password must be at least {self.min_length} characters long",
                code='password_too_short',
            )

    def get_help_text(self):
        return f"Your password must contain at least {self.min_length} characters."


class PatternValidator:
    """Require at least one character matching ``pattern``."""
    pattern = None
    message = None
    code = None

    def validate(self, password, user=None):
        if not re.search(self.pattern, password or ''):
            raise ValidationError(self.message, code=self.code)

    def get_help_text(self):
        return self.message


class NumberValidator(PatternValidator):
    pattern = r'\d'
    message = "Password must contain at least one number"
    code = 'password_no_number'


class UppercaseValidator(PatternValidator):
    pattern = r'[A-Z]'
    message = "Password must contain at least one uppercase letter"
    code = 'password_no_upper'


class LowercaseValidator(PatternValidator):
    pattern = r'[a-z]'
    message = "Password must contain at least one lowercase letter"
    code = 'password_no_lower'
