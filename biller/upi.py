"""UPI deep links and their QR rendering for the terminal."""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import urlencode

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from rich.text import Text

from biller.config import UPI_PAYEE, UPI_PAYEE_NAME
from biller.money import to_money


def upi_link(amount: Decimal, payee: str = UPI_PAYEE, name: str = UPI_PAYEE_NAME) -> str:
    """Build `upi://pay?pa=..&pn=..&am=..&cu=INR` for an amount."""
    query = urlencode({"pa": payee, "pn": name, "am": str(to_money(amount)), "cu": "INR"}, safe="@")
    return f"upi://pay?{query}"


def qr_matrix(data: str) -> list[list[bool]]:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=2)
    qr.add_data(data)
    qr.make(fit=True)
    return qr.get_matrix()


def qr_text(data: str) -> Text:
    """
    Render a QR code with half-block characters, two module rows per line.

    Dark modules are drawn black on white so phones can scan it from the screen.
    """
    matrix = qr_matrix(data)
    width = len(matrix[0]) if matrix else 0
    text = Text(style="black on white", no_wrap=True)
    for y in range(0, len(matrix), 2):
        top = matrix[y]
        bottom = matrix[y + 1] if y + 1 < len(matrix) else [False] * width
        if y > 0:
            text.append("\n")
        for upper, lower in zip(top, bottom):
            if upper and lower:
                text.append("█")
            elif upper:
                text.append("▀")
            elif lower:
                text.append("▄")
            else:
                text.append(" ")
    return text
