"""
Vendor Directory Module

Validates and searches the supplier records purchase orders are raised
against. A vendor carries billing and shipping addresses, contact persons
and bank details; its display name is the party shown on goods receipts.
"""

import logging
import uuid
from typing import List, Optional

from constants.schemas import Vendor
from utils.errors import CatalogueValidationError

logger = logging.getLogger(__name__)


def new_vendor_id() -> str:
    return f"vnd-{uuid.uuid4().hex[:12]}"


def copy_billing_to_shipping(vendor: Vendor) -> Vendor:
    """Return a copy of the vendor shipping to its billing address."""
    return vendor.model_copy(update={"shipping_address": vendor.billing_address.model_copy()})


class VendorDirectory:
    """
    Builds vendor records and filters the directory.
    """

    def validate(self, vendor: Vendor) -> None:
        if not vendor.display_name.strip():
            raise CatalogueValidationError("Display Name is required.")

    def build(self, vendor: Vendor, editing: Optional[Vendor] = None) -> Vendor:
        """
        Validate a submitted vendor and give it its id.

        Args:
            vendor: Submitted vendor details
            editing: Vendor being edited, if any; its id is kept

        Returns:
            Vendor: The record to store
        """
        self.validate(vendor)
        return vendor.model_copy(
            update={
                "id": editing.id if editing else new_vendor_id(),
                "display_name": vendor.display_name.strip(),
            }
        )

    def search(self, vendors: List[Vendor], term: str) -> List[Vendor]:
        """Case-insensitive match on display name, company name or email."""
        q = (term or "").strip().lower()
        if not q:
            return list(vendors)
        return [
            v
            for v in vendors
            if q in v.display_name.lower() or q in v.company_name.lower() or q in v.email.lower()
        ]
