"""Customer repository for database operations."""

from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite
import structlog

from mvp_builder.core.exceptions import CustomerExistsError
from mvp_builder.domain.models.customer import Customer

log = structlog.get_logger(__name__)

_COLUMNS = (
    "customer_id",
    "email",
    "first_name",
    "last_name",
    "subscription_id",
    "subscription_status",
    "subscription_interval",
    "plan_name",
    "subscribe_plan_name",
    "subscription_plan_price",
    "actual_attempts",
    "used_attempt",
    "created_at",
    "updated_at",
)


class CustomerRepository:
    """Repository for customer CRUD operations (SQLite)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def create(self, customer: Customer) -> Customer:
        """Insert a customer.

        Raises:
            CustomerExistsError: customer_id is already stored
        """
        now = datetime.now(timezone.utc)
        customer = customer.model_copy(
            update={"created_at": customer.created_at or now, "updated_at": now}
        )
        placeholders = ", ".join("?" for _ in _COLUMNS)
        async with aiosqlite.connect(self.db_path) as db:
            try:
                await db.execute(
                    f"INSERT INTO customers ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    self._params(customer),
                )
            except aiosqlite.IntegrityError as e:
                raise CustomerExistsError(
                    f"Customer {customer.customer_id} already exists"
                ) from e
            await db.commit()
        log.info("customer_created", customer_id=customer.customer_id)
        return customer

    async def get(self, customer_id: str) -> Optional[Customer]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM customers WHERE customer_id = ?", (customer_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_customer(row) if row else None

    async def list(self) -> List[Customer]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM customers ORDER BY created_at DESC"
            )
            return [self._row_to_customer(row) for row in await cursor.fetchall()]

    async def save(self, customer: Customer) -> Customer:
        """Overwrite an existing customer row."""
        customer = customer.model_copy(
            update={"updated_at": datetime.now(timezone.utc)}
        )
        assignments = ", ".join(f"{col} = ?" for col in _COLUMNS[1:])
        params = self._params(customer)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                f"UPDATE customers SET {assignments} WHERE customer_id = ?",
                params[1:] + params[:1],
            )
            await db.commit()
        return customer

    async def delete(self, customer_id: str) -> bool:
        """Delete a customer. Returns False when nothing was deleted."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM customers WHERE customer_id = ?", (customer_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    @staticmethod
    def _params(customer: Customer) -> tuple:
        dumped = customer.model_dump(mode="json")
        return tuple(dumped[col] for col in _COLUMNS)

    def _row_to_customer(self, row: aiosqlite.Row) -> Customer:
        return Customer(**{col: row[col] for col in _COLUMNS})
