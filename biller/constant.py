"""Editable static menu configuration."""

from __future__ import annotations

# Canonical menu rows consumed by biller.data (which wraps these into MenuItem instances).
# Prices are strings so they load into Decimal without float rounding.
MENU_ROWS: list[dict[str, str | int]] = [
    {"id": 1, "name": "Espresso", "category": "Hot Coffee", "price": "80.00"},
    {"id": 2, "name": "Americano", "category": "Hot Coffee", "price": "110.00"},
    {"id": 3, "name": "Cappuccino", "category": "Hot Coffee", "price": "140.00"},
    {"id": 4, "name": "Cafe Latte", "category": "Hot Coffee", "price": "150.00"},
    {"id": 5, "name": "Mocha", "category": "Hot Coffee", "price": "170.00"},
    {"id": 6, "name": "Cold Coffee", "category": "Cold Coffee", "price": "150.00"},
    {"id": 7, "name": "Iced Americano", "category": "Cold Coffee", "price": "130.00"},
    {"id": 8, "name": "Frappe", "category": "Cold Coffee", "price": "180.00"},
    {"id": 9, "name": "Cold Brew", "category": "Cold Coffee", "price": "160.00"},
    {"id": 10, "name": "Masala Chai", "category": "Tea", "price": "50.00"},
    {"id": 11, "name": "Ginger Lemon Tea", "category": "Tea", "price": "60.00"},
    {"id": 12, "name": "Iced Tea", "category": "Tea", "price": "90.00"},
    {"id": 13, "name": "Veg Sandwich", "category": "Food", "price": "120.00"},
    {"id": 14, "name": "Paneer Sandwich", "category": "Food", "price": "150.00"},
    {"id": 15, "name": "Maggi", "category": "Food", "price": "70.00"},
    {"id": 16, "name": "Cheese Maggi", "category": "Food", "price": "90.00"},
    {"id": 17, "name": "French Fries", "category": "Food", "price": "100.00"},
    {"id": 18, "name": "Peri Peri Fries", "category": "Food", "price": "120.00"},
    {"id": 19, "name": "Brownie", "category": "Dessert", "price": "90.00"},
    {"id": 20, "name": "Brownie with Ice Cream", "category": "Dessert", "price": "130.00"},
    {"id": 21, "name": "Water Bottle", "category": "Other", "price": "20.00"},
]

# Display order for category cycling in the menu pane; unknown categories sort last.
CATEGORY_ORDER: list[str] = ["Hot Coffee", "Cold Coffee", "Tea", "Food", "Dessert", "Other"]

ALL_CATEGORIES = "All"
