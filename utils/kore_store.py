"""
Kore Store Module

The single owner of portal state: current user, catalogue, inventory ledger,
cart, orders, purchase orders, vendors and the product-master lists. Every
mutation goes through a method on KoreStore, runs under one re-entrant lock,
saves the persisted keys and then notifies subscribers with
``(event, store)``. A subscriber that raises is logged and skipped.
"""

import functools
import logging
import threading
from typing import Callable, Dict, List, Optional

from constants.catalogue import (
    PAIRS_PER_CARTON,
    STORAGE_KEY_ARTICLES,
    STORAGE_KEY_BRANDS,
    STORAGE_KEY_CART,
    STORAGE_KEY_CATEGORIES,
    STORAGE_KEY_INVENTORY,
    STORAGE_KEY_MANUFACTURERS,
    STORAGE_KEY_ORDERS,
    STORAGE_KEY_USER,
    STORAGE_KEY_VENDORS,
    generate_seed_articles,
)
from constants.schemas import (
    Article,
    CartLine,
    CatalogueForm,
    GRNHistoryItem,
    GRNReference,
    InventoryRecord,
    MovementRecord,
    Order,
    OrderItem,
    OrderStatus,
    ProductForm,
    PurchaseOrder,
    PurchaseOrderForm,
    StockEntry,
    User,
    Vendor,
    parse_article,
    today_str,
)
from utils.catalogue_manager import CatalogueManager, unique_code
from utils.config import Settings, load_settings
from utils.errors import CatalogueValidationError, RecordNotFoundError
from utils.grn_scanner import GRNSession
from utils.inventory_ledger import InventoryLedger
from utils.local_storage import LocalStorage
from utils.product_master import ProductTaxonomy, build_product
from utils.purchase_orders import PurchaseOrderDesk
from utils.vendors import VendorDirectory

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, "KoreStore"], None]

# Order processing flow shown to the back office
STATUS_FLOW: Dict[OrderStatus, OrderStatus] = {
    OrderStatus.BOOKED: OrderStatus.READY_FOR_DISPATCH,
    OrderStatus.PENDING: OrderStatus.READY_FOR_DISPATCH,
    OrderStatus.READY_FOR_DISPATCH: OrderStatus.DISPATCHED,
    OrderStatus.DISPATCHED: OrderStatus.DELIVERED,
}

CATALOGUE_PARTY = "Internal Catalog"


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """Next step in the processing flow, or None once delivered."""
    return STATUS_FLOW.get(OrderStatus(status))


def mutation(event: str):
    """Run a store method under the lock, then save and notify."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            with self._lock:
                result = func(self, *args, **kwargs)
                self._save()
                self._notify(event)
            return result

        return wrapper

    return decorator


class KoreStore:
    """
    State container for the portal.

    Args:
        storage: Key/value persistence
        settings: Portal settings; read from the environment when omitted
    """

    def __init__(self, storage: LocalStorage, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or load_settings()
        self.catalogue = CatalogueManager()
        self.po_desk = PurchaseOrderDesk()
        self.vendor_directory = VendorDirectory()

        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []

        self.user: Optional[User] = None
        self.articles: List[Article] = []
        self.ledger = InventoryLedger()
        self.cart: List[CartLine] = []
        self.orders: List[Order] = []
        self.purchase_orders: List[PurchaseOrder] = []
        self.stock_entries: List[StockEntry] = []
        self.vendors: List[Vendor] = []
        self.taxonomy = ProductTaxonomy()

        self._load()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "KoreStore":
        settings = settings or load_settings()
        return cls(LocalStorage(settings.storage_dir), settings)

    # --- Loading & saving ---

    def _load(self) -> None:
        stored_user = self.storage.get_item(STORAGE_KEY_USER)
        if stored_user:
            self.user = User(**stored_user)

        stored_articles = self.storage.get_item(STORAGE_KEY_ARTICLES)
        seeded = stored_articles is None
        if seeded:
            stored_articles = generate_seed_articles()
        self.articles = [parse_article(a) for a in stored_articles]

        stored_inventory = self.storage.get_item(STORAGE_KEY_INVENTORY)
        if stored_inventory is None:
            records = [
                InventoryRecord(article_id=a.id, actual_stock=self.settings.initial_stock)
                for a in self.articles
            ]
        else:
            records = [InventoryRecord(**r) for r in stored_inventory]
        self.ledger = InventoryLedger(records)
        for article in self.articles:
            self.ledger.ensure_record(article.id)

        if self.settings.persist_cart:
            self.cart = [CartLine(**line) for line in self.storage.get_item(STORAGE_KEY_CART) or []]
        if self.settings.persist_orders:
            self.orders = [Order(**o) for o in self.storage.get_item(STORAGE_KEY_ORDERS) or []]

        self.vendors = [Vendor(**v) for v in self.storage.get_item(STORAGE_KEY_VENDORS) or []]
        self.taxonomy = ProductTaxonomy(
            self.storage.get_item(STORAGE_KEY_CATEGORIES),
            self.storage.get_item(STORAGE_KEY_BRANDS),
            self.storage.get_item(STORAGE_KEY_MANUFACTURERS),
        )

        if seeded:
            logger.info(f"Seeded catalogue with {len(self.articles)} articles")
            self._save()

    def _save(self) -> None:
        try:
            if self.user is None:
                self.storage.remove_item(STORAGE_KEY_USER)
            else:
                self.storage.set_item(STORAGE_KEY_USER, self.user.model_dump(by_alias=True, mode="json"))

            self.storage.set_item(
                STORAGE_KEY_ARTICLES, [a.model_dump(by_alias=True, mode="json") for a in self.articles]
            )
            self.storage.set_item(
                STORAGE_KEY_INVENTORY,
                [r.model_dump(by_alias=True, mode="json") for r in self.ledger.records()],
            )
            if self.settings.persist_cart:
                self.storage.set_item(
                    STORAGE_KEY_CART, [c.model_dump(by_alias=True, mode="json") for c in self.cart]
                )
            if self.settings.persist_orders:
                self.storage.set_item(
                    STORAGE_KEY_ORDERS, [o.model_dump(by_alias=True, mode="json") for o in self.orders]
                )
            self.storage.set_item(
                STORAGE_KEY_VENDORS, [v.model_dump(by_alias=True, mode="json") for v in self.vendors]
            )
            taxonomy = self.taxonomy.to_dict()
            self.storage.set_item(STORAGE_KEY_CATEGORIES, taxonomy["categories"])
            self.storage.set_item(STORAGE_KEY_BRANDS, taxonomy["brands"])
            self.storage.set_item(STORAGE_KEY_MANUFACTURERS, taxonomy["manufacturers"])
        except OSError as e:
            # In-memory state stays authoritative; the next mutation retries the write
            logger.error(f"Failed to persist store: {e}")

    # --- Subscriptions ---

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for state changes.

        Returns:
            A callable that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, event: str) -> None:
        # The mutation is already saved when subscribers run
        for callback in list(self._subscribers):
            try:
                callback(event, self)
            except Exception as e:
                logger.error(f"Subscriber failed on {event} event: {e}")

    # --- Session ---

    @mutation("user")
    def set_current_user(self, user: Optional[User]) -> None:
        self.user = user
        if user is not None:
            logger.info(f"User {user.email} ({user.role.value}) signed in")

    @mutation("user")
    def logout(self) -> None:
        self.user = None
        self.cart = []
        logger.info("User signed out, cart cleared")

    # --- Catalogue ---

    def get_article(self, article_id: str) -> Article:
        for article in self.articles:
            if article.id == article_id:
                return article
        raise RecordNotFoundError("Article", article_id)

    @mutation("articles")
    def add_article(self, article: Article) -> Article:
        if any(a.id == article.id for a in self.articles):
            raise CatalogueValidationError(f"Article '{article.id}' already exists")
        self.articles.insert(0, article)
        self.ledger.ensure_record(article.id)
        logger.info(f"Added article {article.sku}")
        return article

    @mutation("articles")
    def update_article(self, article: Article) -> Article:
        for idx, existing in enumerate(self.articles):
            if existing.id == article.id:
                self.articles[idx] = article
                logger.info(f"Updated article {article.sku}")
                return article
        raise RecordNotFoundError("Article", article.id)

    @mutation("articles")
    def delete_article(self, article_id: str) -> None:
        """Remove an article together with its inventory record and cart line."""
        self.get_article(article_id)
        self.articles = [a for a in self.articles if a.id != article_id]
        self.ledger.drop_record(article_id)
        self.cart = [line for line in self.cart if line.article_id != article_id]
        logger.info(f"Deleted article {article_id}")

    def submit_catalogue(self, form: CatalogueForm, editing_id: Optional[str] = None) -> Article:
        """Validate a catalogue form and add or update the entry it describes."""
        with self._lock:
            editing = self.get_article(editing_id) if editing_id else None
            entry = self.catalogue.build_entry(form, editing, [a.sku for a in self.articles])
            if editing is not None:
                return self.update_article(entry)
            return self.add_article(entry)

    def promote_article(self, article_id: str) -> Article:
        with self._lock:
            promoted = self.catalogue.promote_to_available(self.get_article(article_id))
            return self.update_article(promoted)

    def create_product(self, form: ProductForm) -> Article:
        """Add a product-master article with its colour x size-range variants."""
        with self._lock:
            category = form.product_category.strip()
            brand = form.brand.strip()
            if category and category not in self.taxonomy.categories:
                raise RecordNotFoundError("Category", category)
            if brand and brand not in self.taxonomy.brands.get(category, []):
                raise RecordNotFoundError("Brand", brand)
            return self.add_article(build_product(form, [a.sku for a in self.articles]))

    # --- Product master lists ---

    @mutation("taxonomy")
    def add_category(self, category: str) -> None:
        self.taxonomy.add_category(category)

    @mutation("taxonomy")
    def delete_category(self, category: str) -> None:
        self.taxonomy.delete_category(category)
        logger.info(f"Deleted product category {category} and its brands")

    @mutation("taxonomy")
    def add_brand(self, category: str, brand: str) -> None:
        self.taxonomy.add_brand(category, brand)

    @mutation("taxonomy")
    def delete_brand(self, category: str, brand: str) -> None:
        self.taxonomy.delete_brand(category, brand)

    @mutation("taxonomy")
    def add_manufacturer(self, manufacturer: str) -> None:
        self.taxonomy.add_manufacturer(manufacturer)

    @mutation("taxonomy")
    def delete_manufacturer(self, manufacturer: str) -> None:
        self.taxonomy.delete_manufacturer(manufacturer)

    # --- Vendors ---

    def get_vendor(self, vendor_id: str) -> Vendor:
        for vendor in self.vendors:
            if vendor.id == vendor_id:
                return vendor
        raise RecordNotFoundError("Vendor", vendor_id)

    def search_vendors(self, term: str = "") -> List[Vendor]:
        return self.vendor_directory.search(self.vendors, term)

    @mutation("vendors")
    def add_vendor(self, vendor: Vendor) -> Vendor:
        record = self.vendor_directory.build(vendor)
        self.vendors.insert(0, record)
        logger.info(f"Added vendor {record.display_name} ({record.id})")
        return record

    @mutation("vendors")
    def update_vendor(self, vendor_id: str, vendor: Vendor) -> Vendor:
        existing = self.get_vendor(vendor_id)
        record = self.vendor_directory.build(vendor, editing=existing)
        self.vendors = [record if v.id == vendor_id else v for v in self.vendors]
        logger.info(f"Updated vendor {record.display_name} ({record.id})")
        return record

    @mutation("vendors")
    def delete_vendor(self, vendor_id: str) -> None:
        """Purchase orders already raised keep the vendor name they were raised with."""
        self.get_vendor(vendor_id)
        self.vendors = [v for v in self.vendors if v.id != vendor_id]
        logger.info(f"Deleted vendor {vendor_id}")

    # --- Purchase orders ---

    @mutation("purchase_orders")
    def create_purchase_order(
        self, form: PurchaseOrderForm, mode: str, linked_catalog_id: Optional[str] = None
    ) -> PurchaseOrder:
        vendor = self.get_vendor(form.vendor_id) if form.vendor_id else None
        record, article = self.po_desk.prepare(
            form, mode, self.articles, linked_catalog_id, [po.id for po in self.purchase_orders]
        )
        if vendor is not None:
            record.vendor_id = vendor.id
            record.vendor_name = vendor.display_name

        if article is not None:
            existing = next((i for i, a in enumerate(self.articles) if a.id == article.id), None)
            if existing is None:
                self.articles.insert(0, article)
                self.ledger.ensure_record(article.id)
            else:
                self.articles[existing] = article

        self.purchase_orders.insert(0, record)
        logger.info(f"Purchase order {record.id} ({form.po_no}) submitted in {mode} mode")
        return record

    # --- Cart ---

    @mutation("cart")
    def add_to_cart(self, article_id: str) -> CartLine:
        """Add one carton of an article, creating the line if needed."""
        self.get_article(article_id)
        for line in self.cart:
            if line.article_id == article_id:
                line.cartons += 1
                return line
        line = CartLine(article_id=article_id, cartons=1)
        self.cart.append(line)
        return line

    @mutation("cart")
    def remove_from_cart(self, article_id: str) -> None:
        """Take one carton off a line; a line at one carton is removed."""
        for line in self.cart:
            if line.article_id == article_id:
                if line.cartons > 1:
                    line.cartons -= 1
                else:
                    self.cart.remove(line)
                return

    @mutation("cart")
    def clear_cart_item(self, article_id: str) -> None:
        self.cart = [line for line in self.cart if line.article_id != article_id]

    def cart_total(self) -> float:
        total = 0.0
        for line in self.cart:
            article = next((a for a in self.articles if a.id == line.article_id), None)
            if article is not None:
                total += article.price_per_pair * PAIRS_PER_CARTON * line.cartons
        return total

    def cart_items_count(self) -> int:
        return sum(line.cartons for line in self.cart)

    # --- Orders ---

    def _new_order_id(self) -> str:
        return unique_code("ORD-", 6, [o.id for o in self.orders])

    @mutation("orders")
    def place_order(self) -> Order:
        """
        Book the cart as a new order for the current user.

        Stock is reserved per line; a booking is never rejected for
        insufficient stock, available stock simply goes negative.

        Raises:
            CatalogueValidationError: No signed-in user, or the cart is empty
        """
        if self.user is None:
            raise CatalogueValidationError("Sign in to place an order")
        if not self.cart:
            raise CatalogueValidationError("Cart is empty")

        items = []
        for line in self.cart:
            article = self.get_article(line.article_id)
            items.append(
                OrderItem(
                    article_id=line.article_id,
                    carton_count=line.cartons,
                    pair_count=line.cartons * PAIRS_PER_CARTON,
                    price=article.price_per_pair * PAIRS_PER_CARTON * line.cartons,
                )
            )

        order = Order(
            id=self._new_order_id(),
            distributor_id=self.user.id,
            distributor_name=self.user.company_name or self.user.name,
            date=today_str(),
            status=OrderStatus.BOOKED,
            items=items,
            total_amount=sum(i.price for i in items),
            total_cartons=sum(i.carton_count for i in items),
            total_pairs=sum(i.pair_count for i in items),
        )

        self.ledger.reserve(self.cart)
        self.orders.insert(0, order)
        self.cart = []

        logger.info(
            f"Order {order.id} booked by {order.distributor_name}: "
            f"{order.total_cartons} cartons, {order.total_amount:.2f}"
        )
        return order

    def get_order(self, order_id: str) -> Order:
        for order in self.orders:
            if order.id == order_id:
                return order
        raise RecordNotFoundError("Order", order_id)

    @mutation("orders")
    def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        """
        Move an order to a new status. The first move to DISPATCHED takes the
        ordered cartons out of actual and reserved stock; later moves never
        release the same order again.
        """
        try:
            status = OrderStatus(status)
        except ValueError:
            raise CatalogueValidationError(f"Unknown order status: {status}")

        order = self.get_order(order_id)
        previous = order.status

        if status == OrderStatus.DISPATCHED and not order.stock_released:
            self.ledger.release_for_dispatch(order)
            order.stock_released = True

        order.status = status
        logger.info(f"Order {order.id}: {previous.value} -> {status.value}")
        return order

    def advance_order(self, order_id: str) -> Order:
        """Move an order one step along the processing flow."""
        with self._lock:
            order = self.get_order(order_id)
            following = next_status(order.status)
            if following is None:
                raise CatalogueValidationError(f"Order {order_id} is already {order.status.value}")
            return self.update_order_status(order_id, following)

    def orders_for_distributor(self, distributor_id: str) -> List[Order]:
        return [o for o in self.orders if o.distributor_id == distributor_id]

    # --- Inventory ---

    @mutation("inventory")
    def inward(self, article_id: str, cartons: int, movement_type: str = "INWARD", note: str = "") -> InventoryRecord:
        self.get_article(article_id)
        return self.ledger.inward(article_id, cartons, movement_type, note)

    @mutation("inventory")
    def outward(self, article_id: str, cartons: int, movement_type: str = "OUTWARD", note: str = "") -> InventoryRecord:
        self.get_article(article_id)
        return self.ledger.outward(article_id, cartons, movement_type, note)

    @property
    def movements(self) -> List[MovementRecord]:
        return self.ledger.movements

    def low_stock(self, threshold: Optional[int] = None) -> List[InventoryRecord]:
        if threshold is None:
            threshold = self.settings.low_stock_threshold
        return self.ledger.low_stock(threshold)

    # --- Goods receipt ---

    def grn_references(self) -> List[GRNReference]:
        """
        References cartons can be received against: submitted purchase orders
        first, then catalogue articles.
        """
        references = []
        for po in self.purchase_orders:
            ref_no = po.data.po_no.strip()
            if ref_no.upper().startswith("PO-"):
                ref_no = ref_no[3:]
            article = next((a for a in self.articles if a.id == po.linked_catalog_article_id), None)
            references.append(
                GRNReference(
                    id=f"PO-{ref_no}",
                    ref_type="PO",
                    ref_no=ref_no,
                    party=po.vendor_name,
                    article=article.name if article else po.data.article_name,
                    article_id=po.linked_catalog_article_id,
                )
            )

        for article in self.articles:
            ref_no = article.sku[4:] if article.sku.startswith("CAT-") else article.sku
            references.append(
                GRNReference(
                    id=f"CAT-{ref_no}",
                    ref_type="CAT",
                    ref_no=ref_no,
                    party=CATALOGUE_PARTY,
                    article=article.name,
                    article_id=article.id,
                )
            )
        return references

    def get_grn_reference(self, reference_id: str) -> GRNReference:
        for reference in self.grn_references():
            if reference.id == reference_id:
                return reference
        raise RecordNotFoundError("GRN reference", reference_id)

    @mutation("inventory")
    def record_stock_entry(self, entry: StockEntry) -> None:
        """
        Sink for GRN submissions: each received carton is booked inward against
        the reference's article.

        Raises:
            RecordNotFoundError: The reference's article is no longer in the catalogue
        """
        if not entry.article_id or not self.ledger.has(entry.article_id):
            raise RecordNotFoundError("Article", entry.article_id or entry.ref_id)

        movement_type = "PURCHASE" if entry.ref_type == "PO" else "INWARD"
        self.ledger.inward(
            entry.article_id, 1, movement_type, note=f"{entry.grn_no} {entry.carton_barcode}"
        )
        self.stock_entries.insert(0, entry)

    def receive_grn(self, session: GRNSession) -> Optional[GRNHistoryItem]:
        """
        Submit a GRN session into the inventory.

        The reference's article is checked before any carton is booked, so a
        rejected GRN keeps its cartons in the session.

        Returns:
            GRNHistoryItem, or None when the session has nothing to submit

        Raises:
            CatalogueValidationError: The reference has no catalogue article
        """
        with self._lock:
            if not session.can_submit:
                return None
            reference = session.reference
            if not reference.article_id or not self.ledger.has(reference.article_id):
                logger.warning(f"GRN against {reference.id} rejected: no catalogue article")
                raise CatalogueValidationError(
                    f"{reference.id} is not linked to a catalogue article; cartons cannot be booked"
                )
            return session.submit(self.record_stock_entry)
