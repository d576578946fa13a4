"""
Reusable field types for request bodies.

Length and range rules are declared on the models; these cover inputs that
need trimming or case folding before the rule applies.
"""
from typing import Annotated

from pydantic import BeforeValidator, EmailStr, StringConstraints


def normalize_email(value: object) -> object:
    return value.strip().lower() if isinstance(value, str) else value


# A phone number counts only once surrounding whitespace is gone.
PhoneStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]
FullNameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
NormalizedEmail = Annotated[EmailStr, BeforeValidator(normalize_email)]
