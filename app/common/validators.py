"""
Validadores de datos fiscales y de contacto (Italia / UE)
"""
import re
from typing import Optional


PERSON_FISCAL_CODE_PATTERN = re.compile(
    r'^[A-Z]{6}[0-9LMNPQRSTUV]{2}[A-Z][0-9LMNPQRSTUV]{2}[A-Z][0-9LMNPQRSTUV]{3}[A-Z]$'
)
FOREIGN_VAT_PATTERN = re.compile(r'^[A-Z]{2}[0-9A-Z]{2,13}$')


def clean_identifier(value: str) -> str:
    """Quita espacios, puntos y guiones y pasa a mayúsculas."""
    return re.sub(r'[\s\.\-]', '', value).upper()


def partita_iva_check_digit(base: str) -> Optional[int]:
    """
    Calcula el dígito de control de una Partita IVA italiana.

    Args:
        base: Los primeros 10 dígitos de la Partita IVA

    Returns:
        El dígito de control (0-9) o None si la entrada no es válida
    """
    if not base or not base.isdigit() or len(base) != 10:
        return None

    total = 0
    for index, char in enumerate(base):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    return (10 - total % 10) % 10


def validate_partita_iva(vat_number: str) -> bool:
    """
    Valida una Partita IVA italiana (11 dígitos, con o sin prefijo IT).
    """
    if not vat_number:
        return False

    cleaned = clean_identifier(vat_number)
    if cleaned.startswith('IT'):
        cleaned = cleaned[2:]

    if len(cleaned) != 11 or not cleaned.isdigit():
        return False

    return partita_iva_check_digit(cleaned[:10]) == int(cleaned[10])


def validate_vat_number(vat_number: str) -> bool:
    """
    Valida un número de IVA.
    - Italiano (11 dígitos o IT + 11 dígitos): verifica dígito de control
    - Otros países UE: prefijo de 2 letras + 2-13 caracteres alfanuméricos
    """
    cleaned = clean_identifier(vat_number)

    if cleaned.isdigit() or cleaned.startswith('IT'):
        return validate_partita_iva(cleaned)

    return bool(FOREIGN_VAT_PATTERN.match(cleaned))


def format_vat_number(vat_number: str) -> str:
    """Normaliza el número de IVA (sin separadores, mayúsculas)."""
    return clean_identifier(vat_number)


def validate_fiscal_code(fiscal_code: str) -> bool:
    """
    Valida el Codice Fiscale.
    Personas físicas: 16 caracteres alfanuméricos.
    Personas jurídicas: coincide con la Partita IVA (11 dígitos).
    """
    cleaned = clean_identifier(fiscal_code)

    if len(cleaned) == 11 and cleaned.isdigit():
        return validate_partita_iva(cleaned)

    return bool(PERSON_FISCAL_CODE_PATTERN.match(cleaned))


def validate_phone(phone: str) -> bool:
    """
    Valida un número de teléfono internacional.
    Acepta prefijo + opcional y entre 6 y 15 dígitos.
    """
    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)
    return bool(re.match(r'^\+?[0-9]{6,15}$', cleaned))


def format_phone(phone: str) -> str:
    """Elimina separadores del número de teléfono conservando el prefijo +."""
    return re.sub(r'[\s\-\(\)\.]', '', phone)


def validate_postal_code(postal_code: str) -> bool:
    """Código postal alfanumérico de 3 a 10 caracteres."""
    cleaned = postal_code.strip().replace(' ', '')
    return bool(re.match(r'^[0-9A-Za-z\-]{3,10}$', cleaned))


def empty_to_none(value: Optional[str]) -> Optional[str]:
    """Convierte cadenas vacías en None (los formularios envían '')."""
    if value is None:
        return None
    value = value.strip()
    return value or None
