from datetime import date, time

import pytest

from barbershop.security_utils import password_problems, sanitize_text
from barbershop.shared.validators import (
    parse_date,
    parse_time,
    validate_ar_phone,
    validate_cuil,
    validate_dni,
    validate_email,
    validate_person_name,
    validate_price,
)


def test_parse_date_accepts_iso_strings_and_dates():
    assert parse_date("2025-03-10") == date(2025, 3, 10)
    assert parse_date(date(2025, 3, 10)) == date(2025, 3, 10)


@pytest.mark.parametrize("value", ["10/03/2025", "2025-02-30", "", None])
def test_parse_date_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_date(value)


def test_parse_time():
    assert parse_time("08:30") == time(8, 30)
    assert parse_time(time(8, 30, 15)) == time(8, 30)


@pytest.mark.parametrize("value", ["8:30", "24:00", "12:60", "12.30"])
def test_parse_time_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_dni_must_have_eight_digits():
    assert validate_dni(" 30123456 ") == "30123456"
    with pytest.raises(ValueError):
        validate_dni("3012345")


def test_cuil_format_and_dni_match():
    assert validate_cuil("20-30123456-7", "30123456") == "20-30123456-7"
    assert validate_cuil(None) is None
    with pytest.raises(ValueError, match="no coincide"):
        validate_cuil("20-30123456-7", "30999999")
    with pytest.raises(ValueError, match="Formato"):
        validate_cuil("20301234567")


def test_person_name_strips_markup():
    assert validate_person_name("  <b>José</b> ") == "José"
    with pytest.raises(ValueError):
        validate_person_name("R2D2")
    with pytest.raises(ValueError):
        validate_person_name("A")


@pytest.mark.parametrize("phone", ["+54 11 1234-5678", "(0351) 1234-5678", "12345678"])
def test_phone_formats(phone):
    assert validate_ar_phone(phone) == phone


def test_phone_rejects_letters():
    with pytest.raises(ValueError):
        validate_ar_phone("11-CALL-NOW")


def test_email_is_lowercased():
    assert validate_email(" Cliente@Example.COM ") == "cliente@example.com"
    with pytest.raises(ValueError):
        validate_email("no-es-un-email")


def test_price_allows_two_decimals():
    assert validate_price("1500.50") == 1500.5
    with pytest.raises(ValueError):
        validate_price("-10")
    with pytest.raises(ValueError):
        validate_price("10.999")


def test_password_rules():
    assert password_problems("Secreta#2024") == []
    assert len(password_problems("corta")) == 4
    assert sanitize_text(None) is None
