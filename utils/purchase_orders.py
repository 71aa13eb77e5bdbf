"""
Purchase Orders Module

Creates purchase orders in one of two modes:

- AUTO_CATALOG: the PO carries the article details; a matching catalogue
  article is updated, otherwise a new one is created.
- LINK_CATALOG: the PO points at an existing catalogue article.

The catalogue is the master record; the PO is transactional.
"""

import logging
import re
from typing import Iterable, List, Optional, Tuple

from constants.schemas import (
    Article,
    AvailableArticle,
    PurchaseOrder,
    PurchaseOrderForm,
)
from utils.catalogue_manager import new_article_id, unique_code
from utils.errors import CatalogueValidationError, RecordNotFoundError
from utils.size_breakup import is_valid_multiple

logger = logging.getLogger(__name__)

AUTO_CATALOG = "AUTO_CATALOG"
LINK_CATALOG = "LINK_CATALOG"

# New articles are priced at this share of MRP until the catalogue is edited
PRICE_TO_MRP_RATIO = 0.55


def generate_sku(name: str, gender: str, taken: Iterable[str] = ()) -> str:
    """KK-<GENDER>-<NAME SLUG>-<4 digits>, never one of `taken`"""
    base = re.sub(r"[^A-Z0-9]+", "-", name.strip().upper()).strip("-")[:18]
    return unique_code(f"KK-{gender}-{base}-", 4, taken)


def find_matching_article(articles: List[Article], form: PurchaseOrderForm) -> Optional[Article]:
    """Same name, gender, colour and sole colour, ignoring case and padding."""
    name = form.article_name.strip().lower()
    color = form.color.strip().lower()
    sole_color = form.sole_color.strip().lower()

    for article in articles:
        if (
            article.name.strip().lower() == name
            and article.category == form.gender
            and article.color.strip().lower() == color
            and article.sole_color.strip().lower() == sole_color
        ):
            return article
    return None


class PurchaseOrderDesk:
    """
    Validates purchase orders and works out the catalogue change each implies.
    """

    def validate(self, form: PurchaseOrderForm, mode: str, linked_catalog_id: Optional[str] = None) -> None:
        if mode not in (AUTO_CATALOG, LINK_CATALOG):
            raise CatalogueValidationError(f"Unknown purchase order mode: {mode}")

        if not form.po_no.strip():
            raise CatalogueValidationError("PO No required")
        if form.total_cartons_qty <= 0:
            raise CatalogueValidationError("Total cartons qty must be > 0")
        if not form.barcode_no.strip():
            raise CatalogueValidationError("Barcode no required")

        if mode == AUTO_CATALOG:
            if not form.article_name.strip():
                raise CatalogueValidationError("Article name required")
            if not form.color.strip():
                raise CatalogueValidationError("Color required")
            if not form.sole_color.strip():
                raise CatalogueValidationError("Sole color required")
            if form.mrp <= 0:
                raise CatalogueValidationError("MRP must be > 0")
            if not is_valid_multiple(form.size_breakup):
                raise CatalogueValidationError("Total pairs must be 24, 48, 72...")
        elif not linked_catalog_id:
            raise CatalogueValidationError("Please select a catalog article to link.")

    def prepare(
        self,
        form: PurchaseOrderForm,
        mode: str,
        articles: List[Article],
        linked_catalog_id: Optional[str] = None,
        existing_ids: Iterable[str] = (),
    ) -> Tuple[PurchaseOrder, Optional[Article]]:
        """
        Validate a purchase order and build the record.

        Args:
            form: Purchase order form
            mode: AUTO_CATALOG or LINK_CATALOG
            articles: Current catalogue
            linked_catalog_id: Catalogue article for LINK_CATALOG
            existing_ids: Purchase order ids already issued

        Returns:
            Tuple of (purchase order, catalogue article to upsert or None)
        """
        self.validate(form, mode, linked_catalog_id)

        article: Optional[Article] = None
        if mode == AUTO_CATALOG:
            match = find_matching_article(articles, form)
            if match is not None:
                article = match.model_copy(
                    update={
                        "name": form.article_name.strip(),
                        "category": form.gender,
                        "color": form.color.strip(),
                        "sole_color": form.sole_color.strip(),
                        "mrp": float(form.mrp),
                        "size_range": form.size_range.strip(),
                        "size_breakup": dict(form.size_breakup),
                    }
                )
                logger.info(f"PO {form.po_no} updates catalogue article {match.id}")
            else:
                article = AvailableArticle(
                    id=new_article_id(),
                    name=form.article_name.strip(),
                    sku=generate_sku(form.article_name, form.gender.value, [a.sku for a in articles]),
                    category=form.gender,
                    price_per_pair=max(0, round(form.mrp * PRICE_TO_MRP_RATIO)),
                    image_url="",
                    color=form.color.strip(),
                    sole_color=form.sole_color.strip(),
                    mrp=float(form.mrp),
                    size_range=form.size_range.strip(),
                    size_breakup=dict(form.size_breakup),
                )
                logger.info(f"PO {form.po_no} creates catalogue article {article.sku}")
            linked_id = article.id
        else:
            if not any(a.id == linked_catalog_id for a in articles):
                raise RecordNotFoundError("Article", linked_catalog_id)
            linked_id = linked_catalog_id

        record = PurchaseOrder(
            id=unique_code("PO-", 6, existing_ids),
            mode=mode,
            status="SUBMITTED",
            linked_catalog_article_id=linked_id,
            data=form.model_copy(),
        )
        return record, article
