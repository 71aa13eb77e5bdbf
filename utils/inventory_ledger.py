"""
Inventory Ledger Module

Keeps the per-article stock position (actual, reserved, available cartons)
consistent across inward and outward movements, order reservations and
dispatch releases. Available stock is never stored; it is always derived from
the actual and reserved figures on the record.
"""

import logging
from typing import Dict, Iterable, List, Optional

from constants.catalogue import DEFAULT_LOW_STOCK_THRESHOLD, IN_STOCK_ABOVE
from constants.schemas import (
    INWARD_MOVEMENTS,
    OUTWARD_MOVEMENTS,
    CartLine,
    InventoryRecord,
    MovementRecord,
    Order,
)
from utils.errors import CatalogueValidationError, RecordNotFoundError

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Reservation ledger over one inventory record per article.
    """

    def __init__(self, records: Optional[Iterable[InventoryRecord]] = None):
        self._records: Dict[str, InventoryRecord] = {}
        for record in records or []:
            self._records[record.article_id] = record
        self.movements: List[MovementRecord] = []

    # --- Record access ---

    def records(self) -> List[InventoryRecord]:
        return list(self._records.values())

    def get(self, article_id: str) -> InventoryRecord:
        record = self._records.get(article_id)
        if record is None:
            raise RecordNotFoundError("Inventory record", article_id)
        return record

    def has(self, article_id: str) -> bool:
        return article_id in self._records

    def ensure_record(self, article_id: str, actual_stock: int = 0) -> InventoryRecord:
        """Create an empty record for a new article; existing records are left alone."""
        if article_id not in self._records:
            self._records[article_id] = InventoryRecord(
                article_id=article_id, actual_stock=actual_stock, reserved_stock=0
            )
        return self._records[article_id]

    def drop_record(self, article_id: str) -> None:
        self._records.pop(article_id, None)

    # --- Movements ---

    def inward(self, article_id: str, cartons: int, movement_type: str = "INWARD", note: str = "") -> InventoryRecord:
        """
        Record cartons arriving at the master warehouse.

        Args:
            article_id: Article receiving stock
            cartons: Number of cartons, must be > 0
            movement_type: INWARD, PRODUCTION, PURCHASE or RETURN
            note: Free-text note for the movement log

        Returns:
            InventoryRecord: The updated record
        """
        self._check_quantity(cartons)
        if movement_type not in INWARD_MOVEMENTS:
            raise CatalogueValidationError(f"{movement_type} is not an inward movement")

        record = self.get(article_id)
        movement = self._new_movement(article_id, movement_type, cartons, note)
        record.actual_stock += cartons
        self.movements.insert(0, movement)

        logger.info(
            f"Inward {cartons} cartons for {article_id}: actual={record.actual_stock}, "
            f"available={record.available_stock}"
        )
        return record

    def outward(self, article_id: str, cartons: int, movement_type: str = "OUTWARD", note: str = "") -> InventoryRecord:
        """
        Record cartons leaving outside of order dispatch (samples, returns to
        vendor, e-commerce). Actual stock floors at zero rather than failing.
        """
        self._check_quantity(cartons)
        if movement_type not in OUTWARD_MOVEMENTS:
            raise CatalogueValidationError(f"{movement_type} is not an outward movement")

        record = self.get(article_id)
        requested = cartons
        movement = self._new_movement(article_id, movement_type, requested, note)
        record.actual_stock = max(0, record.actual_stock - cartons)
        self.movements.insert(0, movement)

        logger.info(
            f"Outward {requested} cartons for {article_id}: actual={record.actual_stock}, "
            f"available={record.available_stock}"
        )
        return record

    def reserve(self, cart: Iterable[CartLine]) -> None:
        """
        Hold cartons against a new booking. Available stock may go negative to
        show a shortfall; the booking is never rejected here.
        """
        for line in cart:
            record = self.ensure_record(line.article_id)
            record.reserved_stock += line.cartons
            if record.available_stock < 0:
                logger.warning(
                    f"Booking puts {line.article_id} into shortfall: available={record.available_stock}"
                )

    def release_for_dispatch(self, order: Order) -> None:
        """Take dispatched cartons out of both actual and reserved stock."""
        for item in order.items:
            record = self._records.get(item.article_id)
            if record is None:
                logger.warning(f"Dispatch of {order.id}: no inventory record for {item.article_id}")
                continue
            record.actual_stock -= item.carton_count
            record.reserved_stock -= item.carton_count

        logger.info(f"Released stock for dispatched order {order.id}")

    # --- Reports ---

    def low_stock(self, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> List[InventoryRecord]:
        return [record for record in self._records.values() if is_low_stock(record, threshold)]

    def _check_quantity(self, cartons: int) -> None:
        if not isinstance(cartons, int) or cartons <= 0:
            raise CatalogueValidationError("Carton quantity must be greater than 0")

    def _new_movement(self, article_id: str, movement_type: str, cartons: int, note: str) -> MovementRecord:
        # Built before the record changes so an invalid movement leaves stock untouched
        return MovementRecord(article_id=article_id, type=movement_type, carton_count=cartons, note=note)


def is_low_stock(record: InventoryRecord, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> bool:
    return record.available_stock < threshold


def stock_status(record: InventoryRecord) -> str:
    """Label shown against an inventory row."""
    if record.available_stock > IN_STOCK_ABOVE:
        return "In Stock"
    if record.available_stock > 0:
        return "Low Stock"
    return "Out of Stock"
