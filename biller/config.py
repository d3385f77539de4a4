"""Runtime configuration defaults for the biller."""

from __future__ import annotations

import os


def _env(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


STORE_PATH = _env("BILLER_STORE_PATH", "data/biller.db")
SESSION_PATH = _env("BILLER_SESSION_PATH", "data/tables.json")
SESSION_SLOT_KEY = "restaurantTables"
LOG_PATH = _env("BILLER_LOG_PATH", "data/biller.log")
LOG_FORMAT = _env("BILLER_LOG_FORMAT", "text")
LOG_LEVEL = _env("BILLER_LOG_LEVEL", "INFO")

TABLE_COUNT = int(_env("BILLER_TABLE_COUNT", "6"))

SHOP_NAME = _env("BILLER_SHOP_NAME", "Caffeine Club")
UPI_PAYEE = _env("BILLER_UPI_PAYEE", "Q230526975@ybl")
UPI_PAYEE_NAME = _env("BILLER_UPI_PAYEE_NAME", "CaffeineClub")
CURRENCY_SYMBOL = "₹"

API_HOST = _env("BILLER_API_HOST", "127.0.0.1")
API_PORT = int(_env("BILLER_API_PORT", "8000"))

PRINTER_ENABLED = _env("BILLER_PRINTER_ENABLED", "1") not in {"0", "false", "no"}
PRINTER_USB_VENDOR_ID = 0x28E9
PRINTER_USB_PRODUCT_ID = 0x0289
PRINTER_WIDTH_PX = 384
PRINTER_FONT_SIZE = 28
PRINTER_FONT_PATH = "/System/Library/Fonts/SFNS.ttf"
PRINTER_LEFT_INDENT_PX = 8
