import re
import math
from datetime import datetime
from typing import Any, Optional

import phonenumbers

PLATE_REGEX = re.compile(r"[A-Z]{3}-\d[A-Z0-9]\d{2}", re.IGNORECASE)
DATE_REGEX = re.compile(r"\d{4}-\d{2}-\d{2}")


def is_valid_plate(plate: Any) -> bool:
    """Aceita o padrão antigo (ABC-1234) e o Mercosul (ABC-1D23)."""
    if not plate or not isinstance(plate, str):
        return False
    return PLATE_REGEX.fullmatch(plate.strip()) is not None


def normalize_plate(plate: Optional[str]) -> str:
    if not plate:
        return ""
    return plate.strip().upper()


def is_valid_date(value: Any) -> bool:
    """Valida datas no formato YYYY-MM-DD que existam no calendário."""
    if not value or not isinstance(value, str):
        return False
    if DATE_REGEX.fullmatch(value) is None:
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def is_positive_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def clean_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def is_valid_cpf(cpf: Optional[str]) -> bool:
    """
    Valida o CPF pelo algoritmo de dois dígitos verificadores (módulo 11).

    Pontuação é ignorada. Sequências de um único dígito repetido
    (ex: 111.111.111-11) são rejeitadas mesmo passando no cálculo.
    """
    digits = clean_digits(cpf)
    if len(digits) != 11 or digits == digits[0] * 11:
        return False

    numbers = [int(d) for d in digits]

    total = sum(numbers[i] * (10 - i) for i in range(9))
    remainder = (total * 10) % 11
    if remainder in (10, 11):
        remainder = 0
    if remainder != numbers[9]:
        return False

    total = sum(numbers[i] * (11 - i) for i in range(10))
    remainder = (total * 10) % 11
    if remainder in (10, 11):
        remainder = 0
    return remainder == numbers[10]


def national_phone(phone: Optional[str]) -> str:
    """Dígitos do telefone sem o código do país (DDD + número)."""
    digits = clean_digits(phone)
    if digits.startswith("55") and len(digits) > 11:
        digits = digits[2:]
    return digits


def to_e164(phone: Optional[str]) -> str:
    """Formata um telefone brasileiro como +55DDDNUMERO."""
    return f"+55{national_phone(phone)}"


def is_valid_phone(phone: Optional[str]) -> bool:
    digits = national_phone(phone)
    if len(digits) < 10:
        return False
    try:
        parsed = phonenumbers.parse(digits, "BR")
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_possible_number(parsed)
