"""
Asignación de números de factura.

Formato `YYYY-NNNN`: año de emisión y secuencia de 4 dígitos que empieza en
0001 cada año. Se usa siempre el menor número libre, de modo que los números
liberados al eliminar una factura vuelven a asignarse.
"""
import re
from typing import Iterable

INVOICE_NUMBER_PATTERN = re.compile(r"^\d{4}-\d{4}$")
MAX_SEQUENCE = 9999

_TRAILING_DIGITS = re.compile(r"(\d+)$")


def parse_sequence(invoice_number: str) -> int:
    """Secuencia final de un número de factura; 0 si no termina en dígitos."""
    match = _TRAILING_DIGITS.search(invoice_number or "")
    return int(match.group(1)) if match else 0


def next_sequence(existing: Iterable[int]) -> int:
    """Menor entero positivo que no está en `existing`."""
    candidate = 1
    for value in sorted(set(existing)):
        if value < candidate:
            continue
        if value > candidate:
            break
        candidate += 1
    return candidate


def allocate_invoice_number(year: int, existing_numbers: Iterable[str]) -> str:
    """
    Siguiente número de factura para el año dado.

    Lanza ValueError si el año ya no tiene números de 4 dígitos libres.

    >>> allocate_invoice_number(2025, [])
    '2025-0001'
    >>> allocate_invoice_number(2025, ["2025-0001", "2025-0003"])
    '2025-0002'
    """
    sequence = next_sequence(parse_sequence(number) for number in existing_numbers)
    if sequence > MAX_SEQUENCE:
        raise ValueError(f"No quedan números de factura libres para {year}")
    return f"{year}-{sequence:04d}"


def is_valid_invoice_number(invoice_number: str) -> bool:
    return bool(INVOICE_NUMBER_PATTERN.match(invoice_number or ""))
