import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, computed_field

from constants.catalogue import PAIRS_PER_CARTON


def now():
    return datetime.now(ZoneInfo("UTC"))


def today_str() -> str:
    """Current UTC date as YYYY-MM-DD"""
    return now().date().isoformat()


# --- Users ---


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    DISTRIBUTOR = "DISTRIBUTOR"


class User(BaseModel):
    """A portal user, persisted as the current-user record"""

    id: str
    email: str
    name: str
    role: UserRole
    location: Optional[str] = None
    company_name: Optional[str] = Field(alias="companyName", default=None)

    class Config:
        populate_by_name = True


# --- Catalogue ---


class Gender(str, Enum):
    """Gender / assortment type of an article"""

    WOMEN = "WOMEN"
    MEN = "MEN"
    KIDS = "KIDS"


class SizeBreakup(BaseModel):
    size: str
    pairs: int


class Assortment(BaseModel):
    """A standard carton mix for one gender"""

    id: str
    name: str
    type: Gender
    breakup: List[SizeBreakup]
    total_pairs_per_carton: int = Field(alias="totalPairsPerCarton", default=PAIRS_PER_CARTON)

    class Config:
        populate_by_name = True


class Variant(BaseModel):
    """One colour x size-range combination of a product-master article"""

    id: str
    item_name: str = Field(alias="itemName")
    sku: str = ""
    size_skus: Dict[str, str] = Field(alias="sizeSkus", default_factory=dict)
    color: str
    size_range: str = Field(alias="sizeRange")
    cost_price: float = Field(alias="costPrice", default=0)
    selling_price: float = Field(alias="sellingPrice", default=0)
    mrp: float = 0
    hsn_code: str = Field(alias="hsnCode", default="")
    size_quantities: Dict[str, int] = Field(alias="sizeQuantities", default_factory=dict)

    class Config:
        populate_by_name = True


class ArticleBase(BaseModel):
    """Fields shared by every catalogue entry"""

    id: str
    sku: str
    name: str
    category: Gender
    price_per_pair: float = Field(alias="pricePerPair", default=0)
    image_url: str = Field(alias="imageUrl", default="")
    images: List[str] = Field(default_factory=list)
    assortment_id: str = Field(alias="assortmentId", default="")
    mrp: float = 0
    color: str = ""
    sole_color: str = Field(alias="soleColor", default="")
    size_range: str = Field(alias="sizeRange", default="")
    size_breakup: Dict[str, int] = Field(alias="sizeBreakup", default_factory=dict)
    # Product-master details
    product_category: str = Field(alias="productCategory", default="")
    brand: str = ""
    manufacturer: str = ""
    unit: str = "Pairs"
    variants: List[Variant] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @property
    def total_pairs(self) -> int:
        return sum(int(v or 0) for v in self.size_breakup.values())


class AvailableArticle(ArticleBase):
    """Catalogue entry that can be booked today"""

    catalog_status: Literal["AVAILABLE"] = Field(alias="catalogStatus", default="AVAILABLE")


class WishlistedArticle(ArticleBase):
    """Catalogue entry announced ahead of stock; the expected date is mandatory"""

    catalog_status: Literal["WISH"] = Field(alias="catalogStatus", default="WISH")
    expected_available_date: date = Field(alias="expectedAvailableDate")


Article = Union[AvailableArticle, WishlistedArticle]

WISH_STATUSES = {"WISH", "WISHLIST"}


def parse_article(data: Dict[str, Any]) -> Article:
    """
    Build the right catalogue variant from a stored or submitted record.

    Records without a status (older saves) load as available. Both the
    catalogue spelling "WISH" and the API spelling "WISHLIST" are accepted.
    """
    payload = dict(data)
    status = payload.pop("catalogStatus", None) or payload.pop("catalog_status", None)
    status = status or payload.pop("status", None) or "AVAILABLE"
    if str(status).upper() in WISH_STATUSES:
        return WishlistedArticle(**payload)
    payload.pop("expectedAvailableDate", None)
    payload.pop("expected_available_date", None)
    return AvailableArticle(**payload)


class CatalogueForm(BaseModel):
    """Catalogue form as submitted by the back office"""

    name: str = ""
    category: Gender = Gender.MEN
    mrp: float = 0
    color: str = ""
    sole_color: str = Field(alias="soleColor", default="")
    size_range: str = Field(alias="sizeRange", default="")
    size_breakup: Dict[str, int] = Field(alias="sizeBreakup", default_factory=dict)
    images: List[str] = Field(default_factory=list)
    catalog_status: Literal["AVAILABLE", "WISH"] = Field(alias="catalogStatus", default="WISH")
    expected_available_date: Optional[date] = Field(alias="expectedAvailableDate", default=None)

    class Config:
        populate_by_name = True


class ProductForm(BaseModel):
    """Product-master form: a styled article with colour x size-range variants"""

    name: str = ""
    gender: Gender = Gender.MEN
    sole_color: str = Field(alias="soleColor", default="")
    mrp: float = 0
    hsn_code: str = Field(alias="hsnCode", default="")
    product_category: str = Field(alias="productCategory", default="")
    brand: str = ""
    manufacturer: str = ""
    unit: str = "Pairs"
    images: List[str] = Field(default_factory=list)
    colors: List[str] = Field(default_factory=list)
    size_ranges: List[str] = Field(alias="sizeRanges", default_factory=list)
    variants: List[Variant] = Field(default_factory=list)
    catalog_status: Literal["AVAILABLE", "WISH"] = Field(alias="catalogStatus", default="AVAILABLE")
    expected_available_date: Optional[date] = Field(alias="expectedAvailableDate", default=None)

    class Config:
        populate_by_name = True


# --- Inventory ---


class InventoryRecord(BaseModel):
    """Stock position of one article, in cartons"""

    article_id: str = Field(alias="articleId")
    actual_stock: int = Field(alias="actualStock", default=0)
    reserved_stock: int = Field(alias="reservedStock", default=0)

    class Config:
        populate_by_name = True

    @computed_field(alias="availableStock")
    @property
    def available_stock(self) -> int:
        # Negative means bookings exceed physical stock
        return self.actual_stock - self.reserved_stock


MovementType = Literal[
    "INWARD", "PRODUCTION", "PURCHASE", "RETURN", "OUTWARD", "SAMPLE", "ECOMMERCE"
]

INWARD_MOVEMENTS = {"INWARD", "PRODUCTION", "PURCHASE", "RETURN"}
OUTWARD_MOVEMENTS = {"OUTWARD", "SAMPLE", "ECOMMERCE"}


class MovementRecord(BaseModel):
    id: str = Field(default_factory=lambda: f"MOV-{uuid.uuid4().hex[:8]}")
    article_id: str = Field(alias="articleId")
    type: MovementType
    carton_count: int = Field(alias="cartonCount")
    date: str = Field(default_factory=today_str)
    note: str = ""

    class Config:
        populate_by_name = True


# --- Cart & orders ---


class CartLine(BaseModel):
    article_id: str = Field(alias="articleId")
    cartons: int = Field(ge=1)

    class Config:
        populate_by_name = True


class OrderStatus(str, Enum):
    BOOKED = "BOOKED"
    PENDING = "PENDING"  # legacy synonym of BOOKED
    READY_FOR_DISPATCH = "READY_FOR_DISPATCH"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"


OPEN_ORDER_STATUSES = {OrderStatus.BOOKED, OrderStatus.PENDING}


class OrderItem(BaseModel):
    article_id: str = Field(alias="articleId")
    carton_count: int = Field(alias="cartonCount")
    pair_count: int = Field(alias="pairCount")
    price: float

    class Config:
        populate_by_name = True


class Order(BaseModel):
    """A distributor booking"""

    id: str
    distributor_id: str = Field(alias="distributorId")
    distributor_name: str = Field(alias="distributorName")
    date: str = Field(default_factory=today_str)
    status: OrderStatus = OrderStatus.BOOKED
    items: List[OrderItem] = Field(default_factory=list)
    total_amount: float = Field(alias="totalAmount", default=0)
    total_cartons: int = Field(alias="totalCartons", default=0)
    total_pairs: int = Field(alias="totalPairs", default=0)
    # Set once dispatch has taken the cartons out of stock
    stock_released: bool = Field(alias="stockReleased", default=False)

    class Config:
        populate_by_name = True


# --- Goods receipt (GRN) ---


class GRNReference(BaseModel):
    """A purchase order or catalogue article that cartons are received against"""

    id: str
    ref_type: Literal["PO", "CAT"] = Field(alias="refType")
    ref_no: str = Field(alias="refNo")
    party: Optional[str] = None
    article: Optional[str] = None
    article_id: Optional[str] = Field(alias="articleId", default=None)

    class Config:
        populate_by_name = True


class Carton(BaseModel):
    carton_barcode: str = Field(alias="cartonBarcode")
    pair_barcodes: List[str] = Field(alias="pairBarcodes")
    locked_at: datetime = Field(alias="lockedAt", default_factory=now)

    class Config:
        populate_by_name = True


class GRNHistoryItem(BaseModel):
    grn_no: str = Field(alias="grnNo")
    ref_id: str = Field(alias="refId")
    cartons: int
    created_at: datetime = Field(alias="createdAt", default_factory=now)

    class Config:
        populate_by_name = True


class StockEntry(BaseModel):
    """One carton-wise stock entry emitted by a GRN submission"""

    grn_no: str = Field(alias="grnNo")
    ref_id: str = Field(alias="refId")
    ref_type: Literal["PO", "CAT"] = Field(alias="refType")
    article: Optional[str] = None
    article_id: Optional[str] = Field(alias="articleId", default=None)
    carton_barcode: str = Field(alias="cartonBarcode")
    pair_barcodes: List[str] = Field(alias="pairBarcodes")
    created_at: datetime = Field(alias="createdAt", default_factory=now)

    class Config:
        populate_by_name = True


# --- Purchase orders ---


class PurchaseOrderForm(BaseModel):
    article_name: str = Field(alias="articleName", default="")
    gender: Gender = Gender.MEN
    size_range: str = Field(alias="sizeRange", default="")
    size_breakup: Dict[str, int] = Field(alias="sizeBreakup", default_factory=dict)
    color: str = ""
    sole_color: str = Field(alias="soleColor", default="")
    mrp: float = 0
    po_no: str = Field(alias="poNo", default="")
    vendor_cost_per_pair: float = Field(alias="vendorCostPerPair", default=0)
    total_cartons_qty: int = Field(alias="totalCartonsQty", default=0)
    barcode_no: str = Field(alias="barcodeNo", default="")
    vendor_id: Optional[str] = Field(alias="vendorId", default=None)

    class Config:
        populate_by_name = True


class PurchaseOrder(BaseModel):
    id: str
    created_at: datetime = Field(alias="createdAt", default_factory=now)
    mode: Literal["AUTO_CATALOG", "LINK_CATALOG"]
    status: Literal["DRAFT", "SUBMITTED"] = "SUBMITTED"
    linked_catalog_article_id: Optional[str] = Field(alias="linkedCatalogArticleId", default=None)
    vendor_id: Optional[str] = Field(alias="vendorId", default=None)
    vendor_name: Optional[str] = Field(alias="vendorName", default=None)
    data: PurchaseOrderForm

    class Config:
        populate_by_name = True


# --- Vendors ---


class VendorAddress(BaseModel):
    attention: str = ""
    country: str = ""
    address1: str = ""
    address2: str = ""
    city: str = ""
    state: str = ""
    pin_code: str = Field(alias="pinCode", default="")
    phone: str = ""
    fax: str = ""

    class Config:
        populate_by_name = True


class VendorContact(BaseModel):
    id: str = Field(default_factory=lambda: f"cp-{uuid.uuid4().hex[:8]}")
    salutation: str = ""
    first_name: str = Field(alias="firstName", default="")
    last_name: str = Field(alias="lastName", default="")
    email: str = ""
    work_phone: str = Field(alias="workPhone", default="")
    mobile: str = ""

    class Config:
        populate_by_name = True


class VendorBankDetail(BaseModel):
    id: str = Field(default_factory=lambda: f"bk-{uuid.uuid4().hex[:8]}")
    account_holder_name: str = Field(alias="accountHolderName", default="")
    bank_name: str = Field(alias="bankName", default="")
    account_number: str = Field(alias="accountNumber", default="")
    ifsc: str = ""

    class Config:
        populate_by_name = True


class Vendor(BaseModel):
    """A supplier; its display name is the party shown on purchase orders and GRNs"""

    id: str = ""
    salutation: str = ""
    first_name: str = Field(alias="firstName", default="")
    last_name: str = Field(alias="lastName", default="")
    company_name: str = Field(alias="companyName", default="")
    display_name: str = Field(alias="displayName", default="")
    email: str = ""
    work_phone: str = Field(alias="workPhone", default="")
    mobile: str = ""
    pan: str = ""
    msme_registered: bool = Field(alias="msmeRegistered", default=False)
    currency: str = "INR- Indian Rupee"
    payment_terms: str = Field(alias="paymentTerms", default="Due on Receipt")
    tds: str = ""
    enable_portal: bool = Field(alias="enablePortal", default=False)
    billing_address: VendorAddress = Field(alias="billingAddress", default_factory=VendorAddress)
    shipping_address: VendorAddress = Field(alias="shippingAddress", default_factory=VendorAddress)
    contact_persons: List[VendorContact] = Field(alias="contactPersons", default_factory=list)
    bank_details: List[VendorBankDetail] = Field(alias="bankDetails", default_factory=list)

    class Config:
        populate_by_name = True
