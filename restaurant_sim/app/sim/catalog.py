from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ModifierGroupDef:
    name: str
    modifiers: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class MenuItemDef:
    name: str
    price: int
    category: str


@dataclass(frozen=True)
class RoleDef:
    name: str
    system_role: str
    permissions: tuple[str, ...]


TAX_RATES: tuple[dict[str, Any], ...] = (
    {"name": "Sales Tax", "rate": 8.5, "isDefault": True},
    {"name": "Alcohol Tax", "rate": 10.0, "isDefault": False},
    {"name": "Takeout Tax", "rate": 6.0, "isDefault": False},
    {"name": "No Tax", "rate": 0.0, "isDefault": False},
)

CATEGORIES: tuple[str, ...] = (
    "Appetizers",
    "Entrees",
    "Sides",
    "Desserts",
    "Drinks",
    "Alcoholic Beverages",
    "Specials",
)

MODIFIER_GROUPS: tuple[ModifierGroupDef, ...] = (
    ModifierGroupDef("Size Options", (("Small", 0), ("Medium", 200), ("Large", 400))),
    ModifierGroupDef(
        "Temperature",
        (("Rare", 0), ("Medium Rare", 0), ("Medium", 0), ("Medium Well", 0), ("Well Done", 0)),
    ),
    ModifierGroupDef(
        "Add-ons",
        (("Extra Cheese", 150), ("Bacon", 200), ("Avocado", 250), ("Mushrooms", 150), ("Extra Sauce", 100)),
    ),
    ModifierGroupDef(
        "Dressing Options",
        (("Ranch", 0), ("Caesar", 0), ("Balsamic Vinaigrette", 0), ("Blue Cheese", 0), ("Honey Mustard", 0)),
    ),
    ModifierGroupDef(
        "Protein Options",
        (("Chicken", 300), ("Beef", 400), ("Shrimp", 500), ("Tofu", 200), ("No Protein", 0)),
    ),
)

# Which modifier groups a category's items may carry.
CATEGORY_MODIFIER_GROUPS: dict[str, tuple[str, ...]] = {
    "Appetizers": ("Add-ons", "Dressing Options"),
    "Entrees": ("Temperature", "Add-ons", "Protein Options"),
    "Sides": ("Size Options",),
    "Desserts": ("Add-ons",),
    "Drinks": ("Size Options",),
    "Alcoholic Beverages": ("Size Options",),
    "Specials": ("Temperature", "Protein Options"),
}

MENU_ITEMS: tuple[MenuItemDef, ...] = (
    MenuItemDef("Caesar Salad", 995, "Appetizers"),
    MenuItemDef("Garlic Bread", 595, "Appetizers"),
    MenuItemDef("Mozzarella Sticks", 795, "Appetizers"),
    MenuItemDef("Classic Burger", 1295, "Entrees"),
    MenuItemDef("Chicken Alfredo", 1495, "Entrees"),
    MenuItemDef("Grilled Salmon", 1695, "Entrees"),
    MenuItemDef("French Fries", 495, "Sides"),
    MenuItemDef("Onion Rings", 595, "Sides"),
    MenuItemDef("Side Salad", 395, "Sides"),
    MenuItemDef("Chocolate Cake", 795, "Desserts"),
    MenuItemDef("Cheesecake", 695, "Desserts"),
    MenuItemDef("Ice Cream", 495, "Desserts"),
    MenuItemDef("Soda", 295, "Drinks"),
    MenuItemDef("Iced Tea", 250, "Drinks"),
    MenuItemDef("Coffee", 345, "Drinks"),
    MenuItemDef("Craft Beer", 695, "Alcoholic Beverages"),
    MenuItemDef("House Wine", 895, "Alcoholic Beverages"),
    MenuItemDef("Cocktail", 995, "Alcoholic Beverages"),
    MenuItemDef("Chef's Special", 1895, "Specials"),
    MenuItemDef("Catch of the Day", 1795, "Specials"),
    MenuItemDef("Seasonal Item", 1595, "Specials"),
)

_FLOOR = ("ORDERS_R", "ORDERS_W", "INVENTORY_R", "PAYMENTS_R", "PAYMENTS_W")

ROLES: tuple[RoleDef, ...] = (
    RoleDef(
        "Manager",
        "MANAGER",
        _FLOOR + ("INVENTORY_W", "EMPLOYEES_R", "EMPLOYEES_W"),
    ),
    RoleDef("Server", "EMPLOYEE", _FLOOR),
    RoleDef("Bartender", "EMPLOYEE", _FLOOR),
    RoleDef("Host", "EMPLOYEE", ("ORDERS_R", "CUSTOMERS_R", "CUSTOMERS_W")),
    RoleDef("Kitchen Staff", "EMPLOYEE", ("ORDERS_R",)),
)

# Amount discounts are stored as negative magnitudes.
DISCOUNTS: tuple[dict[str, Any], ...] = (
    {"name": "Happy Hour", "percentage": 15},
    {"name": "Senior Discount", "percentage": 10},
    {"name": "Lunch Special", "amount": -500},
    {"name": "$10 Off", "amount": -1000},
)

TABLE_AREAS: tuple[str, ...] = ("Main Dining", "Bar Area", "Patio", "Private Room")
TABLES_PER_AREA = 3
TABLE_CAPACITIES: tuple[int, ...] = (2, 4, 4, 6, 8)

ORDER_NOTES: tuple[str, ...] = (
    "No onions",
    "Extra spicy",
    "On the side",
    "Gluten free if possible",
    "Allergy to nuts",
)

FIRST_NAMES: tuple[str, ...] = (
    "James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda",
    "William", "Elizabeth", "David", "Barbara", "Richard", "Susan", "Joseph", "Jessica",
    "Thomas", "Sarah", "Charles", "Karen", "Christopher", "Nancy", "Daniel", "Lisa",
)

LAST_NAMES: tuple[str, ...] = (
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson",
    "Thomas", "Taylor", "Moore", "Jackson", "Martin", "Lee", "Perez", "Thompson",
)

EMAIL_DOMAINS: tuple[str, ...] = ("gmail.com", "yahoo.com", "outlook.com", "icloud.com")
AREA_CODES: tuple[str, ...] = ("212", "646", "917", "347", "718")

EMPLOYEE_COUNT = 15
CUSTOMER_COUNT = 20


def _unique_names(r: random.Random, count: int) -> list[tuple[str, str]]:
    pairs = [(first, last) for first in FIRST_NAMES for last in LAST_NAMES]
    return r.sample(pairs, count)


def standard_employees(seed: int, count: int = EMPLOYEE_COUNT) -> list[dict[str, Any]]:
    """Seeded staff roster. The first employee is always the manager; PINs are unique."""
    r = random.Random(f"{seed}:employees")
    names = _unique_names(r, count)
    pins = r.sample(range(1000, 10000), count)
    floor_roles = [role.name for role in ROLES if role.system_role != "MANAGER"]
    rows = []
    for i, ((first, last), pin) in enumerate(zip(names, pins)):
        role = "Manager" if i == 0 else floor_roles[(i - 1) % len(floor_roles)]
        rows.append({"name": f"{first} {last}", "nickname": first, "pin": str(pin), "role_name": role})
    return rows


def standard_customers(seed: int, count: int = CUSTOMER_COUNT) -> list[dict[str, Any]]:
    r = random.Random(f"{seed}:customers")
    rows = []
    for first, last in _unique_names(r, count):
        digits = f"{r.randint(100, 999)}{r.randint(1000, 9999)}"
        rows.append(
            {
                "firstName": first,
                "lastName": last,
                "emailAddress": f"{first.lower()}.{last.lower()}{r.randint(100, 999)}@{r.choice(EMAIL_DOMAINS)}",
                "phoneNumber": f"({r.choice(AREA_CODES)}) {digits[:3]}-{digits[3:]}",
                "marketingAllowed": r.random() < 0.6,
            }
        )
    return rows


def standard_tables() -> list[dict[str, Any]]:
    rows = []
    index = 0
    for area in TABLE_AREAS:
        for n in range(1, TABLES_PER_AREA + 1):
            rows.append(
                {
                    "name": f"{area} {n}",
                    "maxSeats": TABLE_CAPACITIES[index % len(TABLE_CAPACITIES)],
                    "areaName": area,
                }
            )
            index += 1
    return rows


def display_name(record: dict) -> Optional[str]:
    """Name used to match remote records against standard members."""
    name = record.get("name")
    if name:
        return str(name)
    first = record.get("firstName")
    last = record.get("lastName")
    if first or last:
        return " ".join(part for part in (first, last) if part)
    return None


def menu_item_by_name(name: str) -> Optional[MenuItemDef]:
    for item in MENU_ITEMS:
        if item.name == name:
            return item
    return None


def modifier_group_by_name(name: str) -> Optional[ModifierGroupDef]:
    for group in MODIFIER_GROUPS:
        if group.name == name:
            return group
    return None
