"""
GRN Scanner Module

Goods-receipt (GRN) carton packing: pair barcodes are scanned one at a time
against a selected purchase order or catalogue reference, grouped into cartons
of exactly 24 unique pairs, and submitted as one stock entry per carton.

Session states:
    NO_REFERENCE -> REFERENCE_SELECTED -> CARTON_IN_PROGRESS -> CARTON_LOCKED -> ...
"""

import logging
import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Set

from constants.catalogue import PAIRS_PER_CARTON
from constants.schemas import Carton, GRNHistoryItem, GRNReference, StockEntry, now

logger = logging.getLogger(__name__)

NO_REFERENCE_MSG = "Please select PO/Catalog first."
EMPTY_CODE_MSG = "Pair barcode required."
DUPLICATE_IN_CARTON_MSG = "Duplicate in current carton not allowed."
DUPLICATE_IN_GRN_MSG = "Duplicate in this GRN not allowed."


class GRNState(str, Enum):
    NO_REFERENCE = "NO_REFERENCE"
    REFERENCE_SELECTED = "REFERENCE_SELECTED"
    CARTON_IN_PROGRESS = "CARTON_IN_PROGRESS"
    CARTON_LOCKED = "CARTON_LOCKED"


@dataclass
class ScanResult:
    """Outcome of one scan; ``error`` is the message shown to the operator."""

    accepted: bool
    error: str = ""
    locked_carton: Optional[Carton] = None


def today_yyyymmdd() -> str:
    return now().strftime("%Y%m%d")


def make_carton_barcode(ref_type: str, ref_no: str, serial: int) -> str:
    # e.g. CTN-20260226-PO-1023-001
    return f"CTN-{today_yyyymmdd()}-{ref_type}-{ref_no}-{serial:03d}"


def filter_references(references: List[GRNReference], term: str) -> List[GRNReference]:
    """Case-insensitive search on reference id or party."""
    q = (term or "").strip().lower()
    if not q:
        return list(references)
    return [r for r in references if q in r.id.lower() or q in (r.party or "").lower()]


class GRNSession:
    """
    One goods-receipt session. Pair barcodes must be unique across the whole
    session, not just within a carton. Operations are serialised on a
    re-entrant lock so concurrent scanners cannot overfill a carton.
    """

    def __init__(self, reference: Optional[GRNReference] = None):
        self._lock = threading.RLock()
        self.reference: Optional[GRNReference] = reference
        self.current_pairs: List[str] = []
        self.cartons: List[Carton] = []
        self.carton_serial = 1
        self.history: List[GRNHistoryItem] = []
        self._scanned: Set[str] = set()

    # --- State ---

    @property
    def current_count(self) -> int:
        return len(self.current_pairs)

    @property
    def can_submit(self) -> bool:
        return self.reference is not None and len(self.cartons) > 0 and not self.current_pairs

    @property
    def state(self) -> GRNState:
        if self.reference is None:
            return GRNState.NO_REFERENCE
        if self.current_pairs:
            return GRNState.CARTON_IN_PROGRESS
        if self.cartons:
            return GRNState.CARTON_LOCKED
        return GRNState.REFERENCE_SELECTED

    def is_scanned(self, code: str) -> bool:
        return code in self._scanned

    def reset(self) -> None:
        """Clear scanning progress; the selected reference is kept."""
        with self._lock:
            self.current_pairs = []
            self.cartons = []
            self.carton_serial = 1
            self._scanned = set()

    def select_reference(self, reference: Optional[GRNReference]) -> None:
        """Picking a reference always starts a fresh GRN."""
        with self._lock:
            self.reset()
            self.reference = reference
        if reference is not None:
            logger.info(f"GRN started against {reference.id}")

    # --- Scanning ---

    def validate_pair(self, code: str) -> str:
        if self.reference is None:
            return NO_REFERENCE_MSG
        if not code:
            return EMPTY_CODE_MSG
        if code in self.current_pairs:
            return DUPLICATE_IN_CARTON_MSG
        if code in self._scanned:
            return DUPLICATE_IN_GRN_MSG
        return ""

    def scan(self, raw_code: str) -> ScanResult:
        """
        Add one pair barcode to the carton in progress. The 24th unique pair
        locks the carton automatically.
        """
        code = (raw_code or "").strip()
        with self._lock:
            error = self.validate_pair(code)
            if error:
                logger.warning(f"Scan rejected ({code!r}): {error}")
                return ScanResult(accepted=False, error=error)

            self.current_pairs.append(code)
            self._scanned.add(code)

            if len(self.current_pairs) == PAIRS_PER_CARTON:
                carton = self._lock_current_carton()
                return ScanResult(accepted=True, locked_carton=carton)

        return ScanResult(accepted=True)

    def _lock_current_carton(self) -> Carton:
        carton = Carton(
            carton_barcode=make_carton_barcode(
                self.reference.ref_type, self.reference.ref_no, self.carton_serial
            ),
            pair_barcodes=list(self.current_pairs),
        )
        self.cartons.append(carton)
        self.carton_serial += 1
        self.current_pairs = []

        logger.info(f"Carton {carton.carton_barcode} locked with {PAIRS_PER_CARTON} pairs")
        return carton

    def rescan_carton(self) -> None:
        """Throw away the incomplete carton so its pairs can be scanned again."""
        with self._lock:
            for code in self.current_pairs:
                self._scanned.discard(code)
            self.current_pairs = []

    def remove_carton(self, carton_barcode: str, confirm: Callable[[str], bool]) -> bool:
        """
        Remove a locked carton after confirmation, releasing its pairs.

        Args:
            carton_barcode: Carton to remove
            confirm: Asked with a prompt; removal only happens when it returns True

        Returns:
            bool: True when the carton was removed
        """
        with self._lock:
            target = next((c for c in self.cartons if c.carton_barcode == carton_barcode), None)
            if target is None:
                return False

            if not confirm(f"Remove carton {carton_barcode}?"):
                return False

            for code in target.pair_barcodes:
                self._scanned.discard(code)
            self.cartons = [c for c in self.cartons if c.carton_barcode != carton_barcode]

        logger.info(f"Carton {carton_barcode} removed from GRN")
        return True

    # --- Submission ---

    def submit(self, sink: Optional[Callable[[StockEntry], None]] = None) -> Optional[GRNHistoryItem]:
        """
        Submit the GRN: one stock entry per locked carton goes to ``sink``.
        The session is then reset with the same reference still selected.

        Returns:
            GRNHistoryItem, or None when the GRN cannot be submitted yet
        """
        with self._lock:
            if not self.can_submit:
                return None

            reference = self.reference
            grn_no = f"GRN-{today_yyyymmdd()}-{random.randint(100, 999)}"

            if sink is not None:
                for carton in self.cartons:
                    sink(
                        StockEntry(
                            grn_no=grn_no,
                            ref_id=reference.id,
                            ref_type=reference.ref_type,
                            article=reference.article,
                            article_id=reference.article_id,
                            carton_barcode=carton.carton_barcode,
                            pair_barcodes=list(carton.pair_barcodes),
                        )
                    )

            item = GRNHistoryItem(grn_no=grn_no, ref_id=reference.id, cartons=len(self.cartons))
            self.history.insert(0, item)
            logger.info(f"{grn_no} submitted for {reference.id}: {item.cartons} cartons")

            self.reset()
            return item
