"""
Catalogue Manager Module

Validates the back-office catalogue form, turns it into a catalogue entry
(available or wish-listed), promotes wish-listed entries once stock arrives,
and searches / pages through the catalogue.
"""

import logging
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional

from constants.catalogue import ASSORTMENT_BY_GENDER, ASSORTMENTS, DISTRIBUTORS
from constants.schemas import (
    Article,
    Assortment,
    AvailableArticle,
    CatalogueForm,
    Gender,
    User,
    WishlistedArticle,
)
from utils.errors import CatalogueValidationError
from utils.size_breakup import apply_size_range, is_valid_multiple

logger = logging.getLogger(__name__)


def capitalize_first(text: str) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:]


def new_article_id() -> str:
    return f"art-{uuid.uuid4().hex[:12]}"


def unique_code(prefix: str, digits: int, taken: Iterable[str]) -> str:
    """
    <prefix> plus the last `digits` digits of epoch milliseconds, bumped
    until the code is not already taken.
    """
    taken = set(taken)
    modulo = 10 ** digits
    number = int(time.time() * 1000) % modulo
    for _ in range(modulo):
        code = f"{prefix}{number:0{digits}d}"
        if code not in taken:
            return code
        number = (number + 1) % modulo
    raise CatalogueValidationError(f"No free {prefix} code left")


def standard_assortments() -> List[Assortment]:
    return [Assortment(**a) for a in ASSORTMENTS]


def assortment_for(gender: Gender) -> Assortment:
    """Standard carton mix for a gender."""
    wanted = ASSORTMENT_BY_GENDER[Gender(gender).value]
    return next(a for a in standard_assortments() if a.id == wanted)


def distributor_directory() -> List[User]:
    return [User(**d) for d in DISTRIBUTORS]


class CatalogueManager:
    """
    Builds and maintains catalogue entries.
    """

    def validate_form(self, form: CatalogueForm) -> None:
        """
        Check a submitted catalogue form.

        Raises:
            CatalogueValidationError: With the first problem found
        """
        if not form.name.strip():
            raise CatalogueValidationError("Article name required")
        if form.mrp <= 0:
            raise CatalogueValidationError("MRP must be > 0")
        if form.size_breakup and not is_valid_multiple(form.size_breakup):
            raise CatalogueValidationError("Total pairs must be 24, 48, 72... (multiple of 24)")
        if form.catalog_status == "WISH" and not form.expected_available_date:
            raise CatalogueValidationError("Expected available date is required for Wish List items.")

    def build_entry(
        self, form: CatalogueForm, editing: Optional[Article] = None, taken_skus: Iterable[str] = ()
    ) -> Article:
        """
        Turn a validated form into a catalogue entry.

        Args:
            form: Submitted catalogue form
            editing: Entry being edited, if any; its id, SKU, price and image are kept
            taken_skus: SKUs already in the catalogue, avoided for a new entry

        Returns:
            Article: AvailableArticle or WishlistedArticle
        """
        self.validate_form(form)

        size_range = form.size_range.strip()
        size_breakup = dict(form.size_breakup)
        if size_range and not size_breakup:
            size_breakup = apply_size_range(size_range)

        fields: Dict[str, Any] = {
            "id": editing.id if editing else new_article_id(),
            "sku": editing.sku if editing else unique_code("CAT-", 6, taken_skus),
            "name": capitalize_first(form.name.strip()),
            "category": form.category,
            "price_per_pair": editing.price_per_pair if editing else 0,
            "image_url": editing.image_url if editing else "",
            "images": list(form.images),
            "assortment_id": editing.assortment_id if editing else ASSORTMENT_BY_GENDER[form.category.value],
            "mrp": float(form.mrp),
            "color": form.color.strip() or (editing.color if editing else ""),
            "sole_color": form.sole_color.strip() or (editing.sole_color if editing else ""),
            "size_range": size_range,
            "size_breakup": size_breakup,
        }
        if editing is not None:
            fields.update(
                editing.model_dump(include={"product_category", "brand", "manufacturer", "unit", "variants"})
            )

        if form.catalog_status == "WISH":
            return WishlistedArticle(expected_available_date=form.expected_available_date, **fields)
        return AvailableArticle(**fields)

    def promote_to_available(self, article: Article) -> Article:
        """
        Move a wish-listed entry into the live catalogue. Only WISH → AVAILABLE
        is allowed; available entries are returned unchanged.
        """
        if not isinstance(article, WishlistedArticle):
            return article

        data = article.model_dump(exclude={"catalog_status", "expected_available_date"})
        logger.info(f"Catalogue entry {article.id} moved from wish list to available")
        return AvailableArticle(**data)

    def search(self, articles: List[Article], term: str) -> List[Article]:
        """Case-insensitive match on name, SKU or sole colour."""
        q = (term or "").strip().lower()
        if not q:
            return list(articles)
        return [
            a
            for a in articles
            if q in a.name.lower() or q in a.sku.lower() or q in a.sole_color.lower()
        ]

    def list_catalogue(
        self,
        articles: List[Article],
        q: str = "",
        status: Optional[str] = None,
        gender: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """
        Filter and page through the catalogue.

        Args:
            articles: Catalogue, newest first
            q: Free-text search term
            status: AVAILABLE or WISH (WISHLIST accepted)
            gender: MEN, WOMEN or KIDS
            page: 1-based page number
            limit: Page size

        Returns:
            dict: items, total, page, limit
        """
        items = self.search(articles, q)

        if status:
            wanted = "WISH" if status.upper() in ("WISH", "WISHLIST") else status.upper()
            items = [a for a in items if a.catalog_status == wanted]

        if gender:
            items = [a for a in items if a.category.value == gender.upper()]

        page = max(1, int(page))
        limit = max(1, int(limit))
        skip = (page - 1) * limit

        return {
            "items": items[skip : skip + limit],
            "total": len(items),
            "page": page,
            "limit": limit,
        }
