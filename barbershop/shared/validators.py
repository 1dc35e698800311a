"""Shared validation utilities used by the pydantic schemas"""

import re
import uuid
from datetime import date, datetime, time
from typing import Optional

from ..security_utils import password_problems, sanitize_text

DNI_PATTERN = re.compile(r"^\d{8}$")
CUIL_PATTERN = re.compile(r"^\d{2}-\d{8}-\d{1}$")
PHONE_PATTERN = re.compile(r"^(\+?54\s?)?(\(?\d{2,4}\)?\s?)?\d{4}-?\d{4}$")
NAME_PATTERN = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑ\s]+$")
EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")
PRICE_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_dni(dni: str) -> str:
    dni = dni.strip()
    if not DNI_PATTERN.match(dni):
        raise ValueError("DNI inválido. Debe tener 8 dígitos")
    return dni


def validate_cuil(cuil: Optional[str], dni: Optional[str] = None) -> Optional[str]:
    """
    Validate the XX-XXXXXXXX-X format and, when the DNI is known, that the
    middle eight digits are that DNI.
    """
    if not cuil:
        return None
    cuil = cuil.strip()
    if not CUIL_PATTERN.match(cuil):
        raise ValueError("CUIL inválido. Formato requerido: XX-XXXXXXXX-X")
    if dni is not None and cuil[3:11] != dni:
        raise ValueError("El DNI en el CUIL no coincide con el DNI proporcionado")
    return cuil


def validate_person_name(value: str, field_label: str = "Nombre") -> str:
    value = sanitize_text(value)
    if len(value) < 2:
        raise ValueError(f"{field_label} debe tener al menos 2 caracteres")
    if len(value) > 50:
        raise ValueError(f"{field_label} no puede tener más de 50 caracteres")
    if not NAME_PATTERN.match(value):
        raise ValueError(f"{field_label} solo puede contener letras")
    return value


def validate_ar_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate an Argentine phone number.

    Accepts forms like "+54 11 1234-5678", "(0351) 1234-5678" or "12345678".
    """
    if not phone:
        return phone
    phone = phone.strip()
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Teléfono inválido. Formato esperado: +54 11 1234-5678")
    return phone


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address
    """
    if not email:
        return email

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Email inválido")
    return email


def validate_password(password: str) -> str:
    problems = password_problems(password)
    if problems:
        raise ValueError("; ".join(problems))
    return password


def parse_date(value) -> date:
    """Accept a date or a YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValueError("Fecha inválida. Formato YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise ValueError("Fecha inválida. Formato YYYY-MM-DD") from e


def parse_time(value) -> time:
    """Accept a time or an HH:MM string"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValueError("Hora inválida. Formato HH:MM")
    hours, minutes = int(value[:2]), int(value[3:])
    if hours > 23 or minutes > 59:
        raise ValueError("Hora inválida. Formato HH:MM")
    return time(hours, minutes)


def validate_price(value) -> float:
    """Non-negative amount with at most two decimals"""
    text = str(value).strip()
    if not PRICE_PATTERN.match(text):
        raise ValueError("Precio inválido. Formato numérico con hasta 2 decimales")
    return float(text)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")
