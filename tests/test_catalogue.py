"""
Tests for catalogue entries and purchase orders.
"""

import os
import sys
import unittest
from datetime import date
from unittest.mock import patch

from pydantic import ValidationError

# Add the parent directory to the path to access utils
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from constants.schemas import (
    AvailableArticle,
    CatalogueForm,
    Gender,
    PurchaseOrderForm,
    UserRole,
    WishlistedArticle,
    parse_article,
)
from utils.catalogue_manager import (
    CatalogueManager,
    assortment_for,
    capitalize_first,
    distributor_directory,
    standard_assortments,
    unique_code,
)
from utils.errors import CatalogueValidationError, RecordNotFoundError
from utils.purchase_orders import (
    AUTO_CATALOG,
    LINK_CATALOG,
    PurchaseOrderDesk,
    find_matching_article,
    generate_sku,
)


def wish_form(**overrides):
    data = {
        "name": "breeze runner",
        "category": Gender.WOMEN,
        "mrp": 1999,
        "sizeRange": "4-8",
        "sizeBreakup": {"4": 3, "5": 6, "6": 6, "7": 6, "8": 3},
        "catalogStatus": "WISH",
        "expectedAvailableDate": "2026-12-01",
    }
    data.update(overrides)
    return CatalogueForm(**data)


class TestArticleModel(unittest.TestCase):

    def test_wishlisted_requires_date(self):
        with self.assertRaises(ValidationError):
            WishlistedArticle(id="a", sku="S", name="N", category=Gender.MEN)

    def test_parse_article_variants(self):
        legacy = parse_article({"id": "a", "sku": "S", "name": "N", "category": "MEN"})
        self.assertIsInstance(legacy, AvailableArticle)

        wish = parse_article(
            {
                "id": "b",
                "sku": "S2",
                "name": "N2",
                "category": "KIDS",
                "status": "WISHLIST",
                "expectedAvailableDate": "2026-11-01",
            }
        )
        self.assertIsInstance(wish, WishlistedArticle)
        self.assertEqual(wish.expected_available_date, date(2026, 11, 1))

        available = parse_article(
            {"id": "c", "sku": "S3", "name": "N3", "category": "WOMEN",
             "catalogStatus": "AVAILABLE", "expectedAvailableDate": "2026-11-01"}
        )
        self.assertFalse(hasattr(available, "expected_available_date"))


class TestCatalogueManager(unittest.TestCase):

    def setUp(self):
        self.manager = CatalogueManager()

    def test_validation_messages(self):
        cases = [
            (wish_form(name="  "), "Article name required"),
            (wish_form(mrp=0), "MRP must be > 0"),
            (wish_form(sizeBreakup={"4": 10}), "Total pairs must be 24, 48, 72... (multiple of 24)"),
            (wish_form(expectedAvailableDate=None), "Expected available date is required for Wish List items."),
        ]
        for form, message in cases:
            with self.assertRaises(CatalogueValidationError) as ctx:
                self.manager.validate_form(form)
            self.assertEqual(str(ctx.exception), message)

    def test_build_new_wish_entry(self):
        entry = self.manager.build_entry(wish_form())
        self.assertIsInstance(entry, WishlistedArticle)
        self.assertEqual(entry.name, "Breeze runner")
        self.assertRegex(entry.sku, r"^CAT-\d{6}$")
        self.assertEqual(entry.price_per_pair, 0)
        self.assertEqual(entry.total_pairs, 24)

    def test_size_range_fills_empty_breakup(self):
        entry = self.manager.build_entry(
            wish_form(sizeBreakup={}, catalogStatus="AVAILABLE", expectedAvailableDate=None)
        )
        self.assertIsInstance(entry, AvailableArticle)
        self.assertEqual(entry.size_breakup, {"4": 0, "5": 0, "6": 0, "7": 0, "8": 0})

    def test_edit_keeps_identity(self):
        original = AvailableArticle(
            id="art-7", sku="KK-M-HALO-NAVY", name="Halo (Navy)", category=Gender.MEN,
            price_per_pair=1450, image_url="http://img",
        )
        entry = self.manager.build_entry(
            wish_form(name="halo", category=Gender.MEN, catalogStatus="AVAILABLE"), editing=original
        )
        self.assertEqual((entry.id, entry.sku, entry.price_per_pair, entry.image_url),
                         ("art-7", "KK-M-HALO-NAVY", 1450, "http://img"))
        self.assertEqual(entry.name, "Halo")

    def test_edit_keeps_product_details(self):
        original = AvailableArticle(
            id="art-8", sku="KK-M-GLIDE-0001", name="Glide", category=Gender.MEN, brand="Puma",
            product_category="Footwear",
            variants=[{"id": "var-1", "itemName": "Glide-Black-6-8", "color": "Black", "sizeRange": "6-8"}],
        )
        entry = self.manager.build_entry(
            wish_form(name="glide", category=Gender.MEN, catalogStatus="AVAILABLE"), editing=original
        )
        self.assertEqual((entry.brand, entry.product_category), ("Puma", "Footwear"))
        self.assertEqual(entry.variants[0].item_name, "Glide-Black-6-8")

    def test_promote_only_from_wish(self):
        wish = self.manager.build_entry(wish_form())
        promoted = self.manager.promote_to_available(wish)
        self.assertIsInstance(promoted, AvailableArticle)
        self.assertEqual(promoted.id, wish.id)
        self.assertEqual(promoted.catalog_status, "AVAILABLE")

        self.assertIs(self.manager.promote_to_available(promoted), promoted)

    def test_list_catalogue(self):
        articles = [
            AvailableArticle(id=f"a{i}", sku=f"SKU-{i}", name=f"Item {i}",
                             category=Gender.MEN if i % 2 else Gender.WOMEN, sole_color="White")
            for i in range(5)
        ]
        articles.append(self.manager.build_entry(wish_form()))

        result = self.manager.list_catalogue(articles, page=2, limit=2)
        self.assertEqual(result["total"], 6)
        self.assertEqual([a.id for a in result["items"]], ["a2", "a3"])

        self.assertEqual(self.manager.list_catalogue(articles, status="WISHLIST")["total"], 1)
        self.assertEqual(self.manager.list_catalogue(articles, gender="men")["total"], 2)
        self.assertEqual(self.manager.list_catalogue(articles, q="white")["total"], 5)
        self.assertEqual(self.manager.list_catalogue(articles, q="sku-3")["total"], 1)

    def test_capitalize_first(self):
        self.assertEqual(capitalize_first("armour"), "Armour")
        self.assertEqual(capitalize_first(""), "")


def po_form(**overrides):
    data = {
        "articleName": "Street Runner",
        "gender": "MEN",
        "sizeRange": "6-9",
        "sizeBreakup": {"6": 6, "7": 6, "8": 6, "9": 6},
        "color": "Black",
        "soleColor": "White",
        "mrp": 2000,
        "poNo": "PO-1023",
        "vendorCostPerPair": 600,
        "totalCartonsQty": 10,
        "barcodeNo": "8901234",
    }
    data.update(overrides)
    return PurchaseOrderForm(**data)


class TestPurchaseOrders(unittest.TestCase):

    def setUp(self):
        self.desk = PurchaseOrderDesk()

    def test_common_guards(self):
        for overrides, message in [
            ({"poNo": ""}, "PO No required"),
            ({"totalCartonsQty": 0}, "Total cartons qty must be > 0"),
            ({"barcodeNo": " "}, "Barcode no required"),
            ({"soleColor": ""}, "Sole color required"),
            ({"sizeBreakup": {"6": 5}}, "Total pairs must be 24, 48, 72..."),
        ]:
            with self.assertRaises(CatalogueValidationError) as ctx:
                self.desk.prepare(po_form(**overrides), AUTO_CATALOG, [])
            self.assertEqual(str(ctx.exception), message)

    def test_auto_catalog_creates_article(self):
        record, article = self.desk.prepare(po_form(), AUTO_CATALOG, [])
        self.assertIsInstance(article, AvailableArticle)
        self.assertEqual(article.price_per_pair, 1100)
        self.assertRegex(article.sku, r"^KK-MEN-STREET-RUNNER-\d{4}$")
        self.assertEqual(record.status, "SUBMITTED")
        self.assertEqual(record.linked_catalog_article_id, article.id)
        self.assertRegex(record.id, r"^PO-\d{6}$")

    def test_auto_catalog_updates_match(self):
        existing = AvailableArticle(
            id="art-1", sku="KK-MEN-STREET", name="street runner", category=Gender.MEN,
            color="BLACK", sole_color="white", price_per_pair=999,
        )
        self.assertIs(find_matching_article([existing], po_form()), existing)

        record, article = self.desk.prepare(po_form(mrp=2500), AUTO_CATALOG, [existing])
        self.assertEqual(article.id, "art-1")
        self.assertEqual(article.sku, "KK-MEN-STREET")
        self.assertEqual(article.mrp, 2500)
        self.assertEqual(article.price_per_pair, 999)
        self.assertEqual(record.linked_catalog_article_id, "art-1")

    def test_link_catalog(self):
        existing = AvailableArticle(id="art-1", sku="S", name="N", category=Gender.MEN)

        with self.assertRaises(CatalogueValidationError):
            self.desk.prepare(po_form(), LINK_CATALOG, [existing])
        with self.assertRaises(RecordNotFoundError):
            self.desk.prepare(po_form(), LINK_CATALOG, [existing], "art-404")

        record, article = self.desk.prepare(po_form(articleName=""), LINK_CATALOG, [existing], "art-1")
        self.assertIsNone(article)
        self.assertEqual(record.mode, LINK_CATALOG)
        self.assertEqual(record.linked_catalog_article_id, "art-1")

    def test_generate_sku_slug(self):
        sku = generate_sku("  Lust  Sandal / Beige ", "WOMEN")
        self.assertRegex(sku, r"^KK-WOMEN-LUST-SANDAL-BEIGE-\d{4}$")


# Two submissions inside the same millisecond
FROZEN_TIME = 1700000000.5


class TestUniqueIdentifiers(unittest.TestCase):

    @patch("time.time", return_value=FROZEN_TIME)
    def test_unique_code_bumps_past_taken(self, _):
        self.assertEqual(unique_code("CAT-", 6, []), "CAT-000500")
        self.assertEqual(unique_code("CAT-", 6, ["CAT-000500", "CAT-000501"]), "CAT-000502")

    @patch("time.time", return_value=FROZEN_TIME)
    def test_unique_code_wraps_and_runs_out(self, _):
        self.assertEqual(unique_code("X-", 1, [f"X-{n}" for n in range(9)]), "X-9")
        self.assertEqual(unique_code("X-", 1, [f"X-{n}" for n in range(1, 10)]), "X-0")
        with self.assertRaises(CatalogueValidationError):
            unique_code("X-", 1, [f"X-{n}" for n in range(10)])

    @patch("time.time", return_value=FROZEN_TIME)
    def test_catalogue_entries_in_same_millisecond(self, _):
        manager = CatalogueManager()
        first = manager.build_entry(wish_form(name="alpha"))
        second = manager.build_entry(wish_form(name="beta"), taken_skus=[first.sku])
        self.assertNotEqual(first.id, second.id)
        self.assertEqual((first.sku, second.sku), ("CAT-000500", "CAT-000501"))

    @patch("time.time", return_value=FROZEN_TIME)
    def test_purchase_orders_in_same_millisecond(self, _):
        desk = PurchaseOrderDesk()
        articles, po_ids = [], []
        for name in ("Alpha", "Beta"):
            record, article = desk.prepare(
                po_form(articleName=name), AUTO_CATALOG, articles, existing_ids=po_ids
            )
            articles.append(article)
            po_ids.append(record.id)

        self.assertNotEqual(articles[0].id, articles[1].id)
        self.assertEqual(po_ids, ["PO-000500", "PO-000501"])

    @patch("time.time", return_value=FROZEN_TIME)
    def test_generate_sku_avoids_taken(self, _):
        self.assertEqual(generate_sku("Alpha", "MEN"), "KK-MEN-ALPHA-0500")
        self.assertEqual(generate_sku("Alpha", "MEN", taken=["KK-MEN-ALPHA-0500"]), "KK-MEN-ALPHA-0501")


class TestDirectories(unittest.TestCase):

    def test_standard_assortments_fill_a_carton(self):
        assortments = standard_assortments()
        self.assertEqual([a.id for a in assortments], ["as-women-01", "as-men-01", "as-kids-01"])
        for assortment in assortments:
            self.assertEqual(sum(b.pairs for b in assortment.breakup), assortment.total_pairs_per_carton)

    def test_assortment_for_gender(self):
        kids = assortment_for(Gender.KIDS)
        self.assertEqual(kids.name, "Standard Kids (2-5)")
        self.assertEqual(assortment_for("MEN").id, "as-men-01")

    def test_new_entry_gets_standard_assortment(self):
        entry = CatalogueManager().build_entry(wish_form())
        self.assertEqual(entry.assortment_id, "as-women-01")

    def test_distributor_directory(self):
        distributors = distributor_directory()
        self.assertEqual(len(distributors), 5)
        self.assertTrue(all(d.role == UserRole.DISTRIBUTOR for d in distributors))
        self.assertEqual(distributors[0].company_name, "Star sales & Co.")


if __name__ == '__main__':
    unittest.main()
