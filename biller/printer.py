"""Thermal receipt printing for settled bills."""

from __future__ import annotations

import os
from pathlib import Path

from biller.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
    SHOP_NAME,
)
from biller.models import Bill, BillStatus
from biller.money import format_money

_SEPARATOR_HEIGHT_PX = 14
_SEPARATOR_THICKNESS_PX = 2
_LINE_EXTRA_PX = 10
_TAIL_SPACER_PX = 60
_FONT_OVERRIDE_ENV = "BILLER_PRINTER_FONT_PATH"
_LINUX_FONT_FALLBACKS = (
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)

SEPARATOR = None
"""Marker row in `receipt_rows` for a horizontal rule."""


def resolve_printer_font_path() -> str:
    """
    Resolve a printer font path.

    Resolution order:
    1. BILLER_PRINTER_FONT_PATH (if set)
    2. PRINTER_FONT_PATH
    3. Known Linux fallbacks
    """
    env_override = os.environ.get(_FONT_OVERRIDE_ENV, "").strip()
    candidates: list[str] = []
    if env_override:
        candidates.append(env_override)
    candidates.append(PRINTER_FONT_PATH)
    candidates.extend(_LINUX_FONT_FALLBACKS)

    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        if Path(candidate).is_file():
            return candidate

    raise RuntimeError(
        f"No usable printer font found. Set {_FONT_OVERRIDE_ENV} to a valid .ttf/.otf file. "
        f"Tried: {', '.join(seen)}"
    )


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether printer dependencies are importable and a font is available."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def receipt_rows(bill: Bill) -> list[tuple[str, str] | None]:
    """Left/right text pairs for a bill receipt; None rows print as rules."""
    rows: list[tuple[str, str] | None] = [(SHOP_NAME, "")]
    rows.append((bill.time.astimezone().strftime("%d %b %Y %H:%M"), bill.id[:8] if bill.id else ""))
    rows.append(SEPARATOR)
    for line in bill.items:
        rows.append((f"{line.quantity} x {line.name}", format_money(line.line_total)))
    rows.append(SEPARATOR)
    rows.append(("TOTAL", format_money(bill.total)))
    if bill.status is BillStatus.PAID:
        if bill.cash > 0:
            rows.append(("Cash", format_money(bill.cash)))
        if bill.upi > 0:
            rows.append(("UPI", format_money(bill.upi)))
    elif bill.status is BillStatus.PENDING:
        rows.append(("NOT PAID", bill.mobile or ""))
    return rows


def _fit_text_to_px(text: str, font: object, max_width_px: int) -> str:
    from PIL import Image, ImageDraw

    probe = Image.new("1", (1, 1), color=1)
    draw = ImageDraw.Draw(probe)
    if draw.textbbox((0, 0), text, font=font)[2] <= max_width_px:
        return text
    ellipsis = "..."
    trimmed = text
    while trimmed:
        candidate = f"{trimmed}{ellipsis}"
        if draw.textbbox((0, 0), candidate, font=font)[2] <= max_width_px:
            return candidate
        trimmed = trimmed[:-1]
    return ellipsis


def _render_row(left: str, right: str, font: object) -> object:
    from PIL import Image, ImageDraw

    canvas_height = PRINTER_FONT_SIZE + _LINE_EXTRA_PX
    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    draw = ImageDraw.Draw(img)

    right_width = 0
    if right:
        right_bbox = draw.textbbox((0, 0), right, font=font)
        right_width = right_bbox[2] - right_bbox[0]
        draw.text((PRINTER_WIDTH_PX - PRINTER_LEFT_INDENT_PX - right_width - right_bbox[0], 0), right, font=font, fill=0)

    left_room = PRINTER_WIDTH_PX - (PRINTER_LEFT_INDENT_PX * 2) - right_width - 12
    left = _fit_text_to_px(left, font, max(40, left_room))
    bbox = draw.textbbox((0, 0), left, font=font)
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - (bbox[3] - bbox[1])) // 2 - bbox[1]
    draw.text((PRINTER_LEFT_INDENT_PX, y), left, font=font, fill=0)
    return img


def _render_separator() -> object:
    from PIL import Image, ImageDraw

    img = Image.new("1", (PRINTER_WIDTH_PX, _SEPARATOR_HEIGHT_PX), color=1)
    draw = ImageDraw.Draw(img)
    top = (_SEPARATOR_HEIGHT_PX - _SEPARATOR_THICKNESS_PX) // 2
    draw.rectangle((0, top, PRINTER_WIDTH_PX - 1, top + _SEPARATOR_THICKNESS_PX - 1), fill=0)
    return img


def _render_spacer(height_px: int) -> object:
    from PIL import Image

    return Image.new("1", (PRINTER_WIDTH_PX, max(1, height_px)), color=1)


def print_bill(bill: Bill) -> None:
    """Print a receipt for a recorded bill and cut the paper."""
    try:
        from escpos.printer import Usb
        from PIL import ImageFont
    except Exception as exc:
        raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc

    printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)
    font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    for row in receipt_rows(bill):
        if row is SEPARATOR:
            printer.image(_render_separator())
        else:
            printer.image(_render_row(row[0], row[1], font))
    printer.image(_render_spacer(_TAIL_SPACER_PX))
    printer.cut()
