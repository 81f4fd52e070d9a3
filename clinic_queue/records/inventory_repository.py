"""Inventory repository with stock updates and movement logging."""

import uuid
from dataclasses import dataclass
from datetime import datetime

from .connection import get_connection


@dataclass
class InventoryItem:
    id: str
    name: str
    stock: int = 0
    min_stock_level: int = 0
    unit: str | None = None
    category: str = "Medicine"
    price: float = 0
    updated_at: str | None = None

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock_level


class InventoryRepository:
    """Repository for inventory items with stock movement logging."""

    def create(self, item: InventoryItem, changed_by: str = "system") -> InventoryItem:
        """Insert a new inventory item."""
        conn = get_connection()
        cursor = conn.cursor()

        item.id = item.id or str(uuid.uuid4())
        now = datetime.now().isoformat()

        cursor.execute("""
            INSERT INTO inventory_items (id, name, stock, min_stock_level, unit, category, price, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            item.id, item.name, item.stock, item.min_stock_level, item.unit,
            item.category, item.price, now
        ))
        self._log_movement(cursor, item.id, "Created", item.stock, None, changed_by)

        conn.commit()
        conn.close()

        item.updated_at = now
        return item

    def get_by_id(self, item_id: str) -> InventoryItem | None:
        """Get an inventory item by ID."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM inventory_items WHERE id = ?", (item_id,))
        row = cursor.fetchone()
        conn.close()
        return self._row_to_item(row) if row else None

    def save(self, item: InventoryItem, action: str = "Updated", changed_by: str = "system") -> InventoryItem | None:
        """Replace an item's fields, logging the stock delta."""
        conn = get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT stock FROM inventory_items WHERE id = ?", (item.id,))
        row = cursor.fetchone()
        if not row:
            conn.close()
            return None

        now = datetime.now().isoformat()
        cursor.execute("""
            UPDATE inventory_items
            SET name = ?, stock = ?, min_stock_level = ?, unit = ?, category = ?, price = ?, updated_at = ?
            WHERE id = ?
        """, (
            item.name, item.stock, item.min_stock_level, item.unit, item.category,
            item.price, now, item.id
        ))

        delta = item.stock - row["stock"]
        if delta:
            self._log_movement(cursor, item.id, action, delta, None, changed_by)

        conn.commit()
        conn.close()

        item.updated_at = now
        return item

    def list_low_stock(self) -> list[InventoryItem]:
        """Items at or below their reorder point."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM inventory_items WHERE stock <= min_stock_level ORDER BY stock, name"
        )
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_item(row) for row in rows]

    def list_all(self) -> list[InventoryItem]:
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM inventory_items ORDER BY name")
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_item(row) for row in rows]

    def get_log(self, item_id: str, limit: int = 50) -> list[dict]:
        """Get stock movements for an item, newest first."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM inventory_log
            WHERE item_id = ?
            ORDER BY changed_at DESC, rowid DESC
            LIMIT ?
        """, (item_id, limit))
        rows = cursor.fetchall()
        conn.close()
        return [dict(row) for row in rows]

    # Private helpers

    def _log_movement(
        self,
        cursor,
        item_id: str,
        action: str,
        quantity_change: int | None,
        notes: str | None,
        changed_by: str
    ) -> None:
        """Log a stock movement to the audit table."""
        cursor.execute("""
            INSERT INTO inventory_log (id, item_id, action, quantity_change, notes, changed_by)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (str(uuid.uuid4()), item_id, action, quantity_change, notes, changed_by))

    def _row_to_item(self, row) -> InventoryItem:
        """Convert a database row to an InventoryItem object."""
        return InventoryItem(
            id=row["id"],
            name=row["name"],
            stock=row["stock"],
            min_stock_level=row["min_stock_level"],
            unit=row["unit"],
            category=row["category"],
            price=row["price"],
            updated_at=row["updated_at"],
        )
