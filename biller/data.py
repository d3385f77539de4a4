"""Static menu catalog."""

from __future__ import annotations

from biller.constant import ALL_CATEGORIES, CATEGORY_ORDER, MENU_ROWS
from biller.models import MenuItem
from biller.money import to_money

MENU_ITEMS: list[MenuItem] = [
    MenuItem(
        id=int(row["id"]),
        name=str(row["name"]),
        category=str(row["category"]),
        price=to_money(str(row["price"])),
    )
    for row in MENU_ROWS
]

MENU_BY_ID: dict[int, MenuItem] = {item.id: item for item in MENU_ITEMS}


def _category_rank(category: str) -> tuple[int, str]:
    if category in CATEGORY_ORDER:
        return (CATEGORY_ORDER.index(category), category)
    return (len(CATEGORY_ORDER), category)


CATEGORIES: list[str] = [ALL_CATEGORIES] + sorted({item.category for item in MENU_ITEMS}, key=_category_rank)


def menu_item(item_id: int) -> MenuItem:
    """Look up a catalog item by id, raising KeyError for unknown ids."""
    return MENU_BY_ID[item_id]


def filter_menu(category: str = ALL_CATEGORIES, query: str = "") -> list[MenuItem]:
    """Return catalog items in a category whose name contains the query (case-insensitive)."""
    items = MENU_ITEMS if category == ALL_CATEGORIES else [item for item in MENU_ITEMS if item.category == category]
    if not query:
        return list(items)
    q = query.lower()
    return [item for item in items if q in item.name.lower()]
