"""
Product Master Module

Back-office product creation: the category / brand / manufacturer lists,
the colour x size-range variant builder and turning a product form into a
catalogue article.
"""

import logging
import re
import uuid
from typing import Any, Dict, Iterable, List, Optional

from constants.catalogue import (
    ASSORTMENT_BY_GENDER,
    DEFAULT_BRANDS,
    DEFAULT_CATEGORIES,
    DEFAULT_MANUFACTURERS,
)
from constants.schemas import Article, AvailableArticle, ProductForm, Variant, WishlistedArticle
from utils.catalogue_manager import new_article_id, unique_code
from utils.errors import CatalogueValidationError, RecordNotFoundError
from utils.size_breakup import parse_size_range

logger = logging.getLogger(__name__)

SIZE_RANGE_PATTERN = re.compile(r"^\d+-\d+$")

# Variant price fields that can be copied across variants, by field and alias
COPYABLE_FIELDS = {
    "cost_price": "cost_price",
    "costPrice": "cost_price",
    "selling_price": "selling_price",
    "sellingPrice": "selling_price",
    "mrp": "mrp",
}


class ProductTaxonomy:
    """
    Product categories, the brands listed under each category, and
    manufacturers.

    Args:
        categories: Saved categories; the defaults when None
        brands: Saved brands per category; the defaults when None
        manufacturers: Saved manufacturers; the defaults when None
    """

    def __init__(
        self,
        categories: Optional[List[str]] = None,
        brands: Optional[Dict[str, List[str]]] = None,
        manufacturers: Optional[List[str]] = None,
    ):
        self.categories = list(DEFAULT_CATEGORIES if categories is None else categories)
        source = DEFAULT_BRANDS if brands is None else brands
        self.brands = {category: list(names) for category, names in source.items()}
        self.manufacturers = list(DEFAULT_MANUFACTURERS if manufacturers is None else manufacturers)

    def add_category(self, category: str) -> None:
        category = _required(category, "Category name required")
        if category not in self.categories:
            self.categories.append(category)
            self.brands[category] = []

    def delete_category(self, category: str) -> None:
        """Remove a category and every brand listed under it."""
        if category not in self.categories:
            raise RecordNotFoundError("Category", category)
        self.categories.remove(category)
        self.brands.pop(category, None)

    def add_brand(self, category: str, brand: str) -> None:
        if not (category or "").strip():
            raise CatalogueValidationError("Please select a category first")
        if category not in self.categories:
            raise RecordNotFoundError("Category", category)
        brand = _required(brand, "Brand name required")
        names = self.brands.setdefault(category, [])
        if brand not in names:
            names.append(brand)

    def delete_brand(self, category: str, brand: str) -> None:
        names = self.brands.get(category, [])
        if brand not in names:
            raise RecordNotFoundError("Brand", brand)
        names.remove(brand)

    def add_manufacturer(self, manufacturer: str) -> None:
        manufacturer = _required(manufacturer, "Manufacturer name required")
        if manufacturer not in self.manufacturers:
            self.manufacturers.append(manufacturer)

    def delete_manufacturer(self, manufacturer: str) -> None:
        if manufacturer not in self.manufacturers:
            raise RecordNotFoundError("Manufacturer", manufacturer)
        self.manufacturers.remove(manufacturer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": list(self.categories),
            "brands": {category: list(names) for category, names in self.brands.items()},
            "manufacturers": list(self.manufacturers),
        }


def _required(value: str, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise CatalogueValidationError(message)
    return value


def variant_sizes(size_range: str) -> List[str]:
    """Sizes in a variant range; anything that is not a range is a single size."""
    return parse_size_range(size_range) or [size_range.strip()]


def add_size_range(size_ranges: List[str], value: str) -> List[str]:
    """
    Add a start-end size range such as 6-10 to the product's ranges.

    Raises:
        CatalogueValidationError: The value is not in start-end form
    """
    value = (value or "").strip()
    if not SIZE_RANGE_PATTERN.match(value):
        raise CatalogueValidationError("Size range must look like 6-10")
    if value in size_ranges:
        return list(size_ranges)
    return list(size_ranges) + [value]


def build_variants(
    item_name: str,
    colors: List[str],
    size_ranges: List[str],
    mrp: float = 0,
    hsn_code: str = "",
    previous: Iterable[Variant] = (),
) -> List[Variant]:
    """
    One variant per colour and size range.

    A variant already present for a (colour, range) pair keeps its prices,
    SKUs and quantities; sizes missing from it are added at zero.
    """
    if not colors or not size_ranges:
        return []

    existing = {(v.color, v.size_range): v for v in previous}
    variants = []
    for color in colors:
        for size_range in size_ranges:
            sizes = variant_sizes(size_range)
            current = existing.get((color, size_range))
            if current is not None:
                quantities = dict(current.size_quantities)
                for size in sizes:
                    quantities.setdefault(size, 0)
                variants.append(current.model_copy(update={"size_quantities": quantities}))
                continue

            variants.append(
                Variant(
                    id=f"var-{color}-{size_range}-{uuid.uuid4().hex[:6]}",
                    item_name=f"{item_name or 'Item'}-{color}-{size_range}",
                    size_skus={size: "" for size in sizes},
                    color=color,
                    size_range=size_range,
                    mrp=mrp or 0,
                    hsn_code=hsn_code or "",
                    size_quantities={size: 0 for size in sizes},
                )
            )
    return variants


def copy_to_all(variants: List[Variant], field: str, size_range: Optional[str] = None) -> List[Variant]:
    """
    Copy the first variant's price to the others, optionally only within
    one size range.
    """
    if field not in COPYABLE_FIELDS:
        raise CatalogueValidationError(f"Cannot copy {field} across variants")
    attr = COPYABLE_FIELDS[field]

    targets = [v for v in variants if size_range is None or v.size_range == size_range]
    if not targets:
        return list(variants)

    value = getattr(targets[0], attr)
    return [
        v.model_copy(update={attr: value}) if size_range is None or v.size_range == size_range else v
        for v in variants
    ]


def build_product(form: ProductForm, taken_skus: Iterable[str] = ()) -> Article:
    """
    Turn a product-master form into a catalogue article.

    Args:
        form: Submitted product form
        taken_skus: SKUs already in the catalogue

    Returns:
        Article: AvailableArticle or WishlistedArticle carrying the variants
    """
    name = form.name.strip()
    if not name or not form.product_category.strip() or not form.brand.strip():
        raise CatalogueValidationError("Please fill all required fields")
    if form.catalog_status == "WISH" and not form.expected_available_date:
        raise CatalogueValidationError("Expected available date is required for Wish List items.")

    variants = form.variants or build_variants(name, form.colors, form.size_ranges, form.mrp, form.hsn_code)
    slug = re.sub(r"\s+", "", name).upper()

    fields: Dict[str, Any] = {
        "id": new_article_id(),
        "sku": unique_code(f"KK-{form.gender.value[0]}-{slug}-", 4, taken_skus),
        "name": name,
        "category": form.gender,
        "price_per_pair": float(form.mrp),
        "mrp": float(form.mrp),
        "image_url": form.images[0] if form.images else "",
        "images": list(form.images),
        "assortment_id": ASSORTMENT_BY_GENDER[form.gender.value],
        "color": ", ".join(form.colors),
        "sole_color": form.sole_color.strip(),
        "size_range": ", ".join(form.size_ranges),
        "product_category": form.product_category.strip(),
        "brand": form.brand.strip(),
        "manufacturer": form.manufacturer.strip(),
        "unit": form.unit,
        "variants": variants,
    }

    logger.info(f"Product {fields['sku']} built with {len(variants)} variants")
    if form.catalog_status == "WISH":
        return WishlistedArticle(expected_available_date=form.expected_available_date, **fields)
    return AvailableArticle(**fields)
