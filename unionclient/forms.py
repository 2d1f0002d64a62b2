"""
Form input checks

Validation errors block an action before anything is sent to the backend.
"""

import re
from dataclasses import dataclass

from unionclient.errors import ValidationError
from unionclient.models import ALLOWED_GARAGES

MIN_PASSWORD_LENGTH = 6


def format_phone_number(value: str) -> str:
    """Digits to 010-1234-5678 style, as the user types"""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) < 4:
        return digits
    if len(digits) < 8:
        return f"{digits[:3]}-{digits[3:]}"
    if len(digits) < 11:
        return f"{digits[:3]}-{digits[3:7]}-{digits[7:]}"
    return f"{digits[:3]}-{digits[3:7]}-{digits[7:11]}"


@dataclass
class SignupForm:
    name: str
    birth_date: str
    phone: str
    email: str
    garage: str
    password: str
    password_confirm: str

    def validate(self) -> None:
        if not (self.name and self.phone and self.garage and self.email):
            raise ValidationError("필수 항목을 모두 입력해주세요.")
        if self.garage.strip() not in ALLOWED_GARAGES:
            raise ValidationError("소속 차고지는 진관, 도봉, 송파 중 하나만 입력해주세요.", field="garage")
        validate_new_password(self.password, self.password_confirm)


def validate_new_password(password: str, confirm: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("비밀번호는 6자리 이상으로 입력해주세요.", field="password")
    if password != confirm:
        raise ValidationError("비밀번호가 일치하지 않습니다.", field="password_confirm")
