"""Idempotent startup seeding: demo accounts and, on an empty catalog, sample sweets."""
from __future__ import annotations

import logging
from decimal import Decimal

from sweetshop.accounts.domain import RoleName, User
from sweetshop.accounts.infrastructure import IUserRepository
from sweetshop.accounts.security import PasswordHasher
from sweetshop.inventory.domain import Sweet, SweetCategory
from sweetshop.inventory.infrastructure import ISweetRepository
from sweetshop.persistence import InMemoryDatabase

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password"

# username, email, first, last, role
DEMO_USERS = [
    ("admin", "admin@sweetshop.com", "Admin", "User", RoleName.ADMIN),
    ("user", "user@sweetshop.com", "Demo", "User", RoleName.USER),
]

# name, category, price, quantity, unit, brand, description
SAMPLE_SWEETS = [
    ("Gulab Jamun", SweetCategory.MILK_BASED, "25.00", 100, "per piece", "Maharaj Sweets",
     "Soft milk-solid dumplings soaked in rose-flavoured sugar syrup"),
    ("Rasgulla", SweetCategory.MILK_BASED, "20.00", 150, "per piece", "Bengal Sweets",
     "Spongy cottage-cheese balls in light sugar syrup"),
    ("Ras Malai", SweetCategory.MILK_BASED, "35.00", 80, "per piece", "Haldiram's",
     "Flattened paneer discs in saffron-cardamom milk"),
    ("Kaju Katli", SweetCategory.DRY_FRUIT, "450.00", 50, "250g", "Bikano",
     "Diamond-shaped cashew fudge with silver leaf"),
    ("Badam Barfi", SweetCategory.DRY_FRUIT, "400.00", 60, "250g", "Haldiram's",
     "Almond fudge flavoured with cardamom"),
    ("Dry Fruit Laddu", SweetCategory.DRY_FRUIT, "30.00", 120, "per piece", "Maharaj Sweets",
     "Dates, nuts and seeds rolled into laddus, no added sugar"),
    ("Jalebi", SweetCategory.SYRUP_BASED, "180.00", 80, "250g", "Local Sweet Shop",
     "Crisp fried spirals soaked in saffron syrup"),
    ("Imarti", SweetCategory.SYRUP_BASED, "200.00", 70, "250g", "Bikano",
     "Urad-dal flower spirals in sugar syrup"),
    ("Besan Laddu", SweetCategory.FLOUR_BASED, "15.00", 200, "per piece", "Maharaj Sweets",
     "Roasted gram flour, ghee and sugar laddus"),
    ("Motichoor Laddu", SweetCategory.FLOUR_BASED, "18.00", 180, "per piece", "Haldiram's",
     "Fine boondi pearls bound into laddus"),
    ("Boondi Laddu", SweetCategory.FLOUR_BASED, "16.00", 150, "per piece", "Bikano",
     "Fried gram-flour drops in sugar syrup"),
    ("Sandesh", SweetCategory.BENGALI, "22.00", 100, "per piece", "KC Das",
     "Delicate Bengali sweet of fresh chhena and sugar"),
]


class DataSeeder:
    """Runs on every startup; creates only what is missing."""

    def __init__(
        self,
        database: InMemoryDatabase,
        user_repository: IUserRepository,
        sweet_repository: ISweetRepository,
        hasher: PasswordHasher,
    ):
        self._db = database
        self._users = user_repository
        self._sweets = sweet_repository
        self._hasher = hasher

    async def run(self) -> None:
        async with self._db.transaction():
            users = await self._seed_users()
            sweets = await self._seed_sweets()
        if users or sweets:
            logger.info("Seeded %d demo user(s) and %d sample sweet(s)", users, sweets)

    async def _seed_users(self) -> int:
        created = 0
        for username, email, first, last, role in DEMO_USERS:
            if await self._users.find_by_username(username) or await self._users.find_by_email(email):
                continue
            user = User(
                None,
                username,
                email,
                self._hasher.hash(DEMO_PASSWORD),
                first_name=first,
                last_name=last,
                roles={role},
            )
            await self._users.add(user)
            created += 1
        return created

    async def _seed_sweets(self) -> int:
        if await self._sweets.list_all():
            return 0
        for name, category, price, quantity, unit, brand, description in SAMPLE_SWEETS:
            await self._sweets.add(
                Sweet(
                    None,
                    name,
                    category,
                    Decimal(price),
                    quantity,
                    description=description,
                    unit=unit,
                    brand=brand,
                )
            )
        return len(SAMPLE_SWEETS)
