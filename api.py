"""
FastAPI endpoints for the Kore Kollective distribution portal.
Every response uses the envelope {success, message, data, meta}.
"""

import logging
import threading
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from constants.schemas import (
    CatalogueForm,
    Gender,
    OrderStatus,
    ProductForm,
    PurchaseOrderForm,
    User,
    Variant,
    Vendor,
)
from utils import dashboard
from utils.catalogue_manager import assortment_for, distributor_directory, standard_assortments
from utils.config import load_settings
from utils.errors import CatalogueValidationError, RecordNotFoundError
from utils.grn_scanner import GRNSession, filter_references
from utils.kore_store import KoreStore, next_status
from utils.product_master import add_size_range, build_variants, copy_to_all
from utils.size_breakup import summarize_breakup
from utils.vendors import copy_billing_to_shipping

settings = load_settings()

# Set up logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Kore Kollective API",
    description="Catalogue, inventory, orders and goods receipt for the distribution portal",
    version="1.0.0"
)

_store: Optional[KoreStore] = None
_grn_session: Optional[GRNSession] = None
_grn_session_lock = threading.Lock()


def get_store() -> KoreStore:
    global _store
    if _store is None:
        _store = KoreStore.from_settings(settings)
        logger.info(f"Store opened at {settings.storage_dir}")
    return _store


def get_grn_session() -> GRNSession:
    global _grn_session
    with _grn_session_lock:
        if _grn_session is None:
            _grn_session = GRNSession()
    return _grn_session


def dump(value: Any) -> Any:
    """Serialise models (and lists of them) with their public field names."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json")
    if isinstance(value, list):
        return [dump(v) for v in value]
    return value


def envelope(data: Any = None, message: str = "OK", meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": dump(data), "meta": meta}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": None, "meta": None},
    )


@app.exception_handler(CatalogueValidationError)
async def validation_error_handler(request: Request, exc: CatalogueValidationError):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return error_response(400, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid payload for {request.method} {request.url.path}: {exc.errors()}")
    return error_response(400, "Invalid request payload")


@app.exception_handler(RecordNotFoundError)
async def not_found_handler(request: Request, exc: RecordNotFoundError):
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return error_response(404, "Not found")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unexpected error in {request.method} {request.url.path}: {str(exc)}")
    return error_response(500, "Internal server error")


# --- Request bodies ---


class ApiModel(BaseModel):
    class Config:
        populate_by_name = True


class ArticleRef(ApiModel):
    article_id: str = Field(alias="articleId")


class MovementRequest(ApiModel):
    article_id: str = Field(alias="articleId")
    cartons: int
    type: Optional[str] = None
    note: str = ""


class StatusUpdate(ApiModel):
    status: OrderStatus


class PurchaseOrderRequest(ApiModel):
    mode: str
    linked_catalog_id: Optional[str] = Field(alias="linkedCatalogId", default=None)
    data: PurchaseOrderForm


class SizeRangeRequest(ApiModel):
    size_range: str = Field(alias="sizeRange", default="")
    size_breakup: Dict[str, int] = Field(alias="sizeBreakup", default_factory=dict)


class ReferenceSelection(ApiModel):
    reference_id: Optional[str] = Field(alias="referenceId", default=None)


class ScanRequest(ApiModel):
    code: str = ""


class RemoveCartonRequest(ApiModel):
    carton_barcode: str = Field(alias="cartonBarcode")
    confirmed: bool = False


class NameRequest(ApiModel):
    name: str = ""


class BrandRequest(ApiModel):
    category: str = ""
    name: str = ""


class VariantPreviewRequest(ApiModel):
    item_name: str = Field(alias="itemName", default="")
    colors: List[str] = Field(default_factory=list)
    size_ranges: List[str] = Field(alias="sizeRanges", default_factory=list)
    mrp: float = 0
    hsn_code: str = Field(alias="hsnCode", default="")
    variants: List[Variant] = Field(default_factory=list)


class SizeRangeAddRequest(ApiModel):
    size_ranges: List[str] = Field(alias="sizeRanges", default_factory=list)
    value: str = ""


class CopyToAllRequest(ApiModel):
    variants: List[Variant]
    field: str
    size_range: Optional[str] = Field(alias="sizeRange", default=None)


# --- Health ---


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"message": "Kore Kollective API is running", "status": "healthy"}


@app.get("/api/health")
def health_check(store: KoreStore = Depends(get_store)):
    """Detailed health check with store information"""
    return envelope(
        {
            "status": "healthy",
            "articles": len(store.articles),
            "orders": len(store.orders),
            "persist_cart": store.settings.persist_cart,
            "persist_orders": store.settings.persist_orders,
        }
    )


# --- Session ---


@app.get("/api/session")
def get_session(store: KoreStore = Depends(get_store)):
    return envelope(store.user)


@app.put("/api/session")
def set_session(user: User, store: KoreStore = Depends(get_store)):
    store.set_current_user(user)
    return envelope(store.user, "Signed in")


@app.delete("/api/session")
def logout(store: KoreStore = Depends(get_store)):
    store.logout()
    return envelope(None, "Signed out")


# --- Catalogue ---


@app.get("/api/catalogue")
def list_catalogue(
    q: str = "",
    status: Optional[str] = None,
    gender: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    store: KoreStore = Depends(get_store),
):
    result = store.catalogue.list_catalogue(store.articles, q, status, gender, page, limit)
    return envelope(
        result["items"],
        meta={"total": result["total"], "page": result["page"], "limit": result["limit"]},
    )


@app.post("/api/catalogue/size-range")
def preview_size_range(body: SizeRangeRequest):
    return envelope(summarize_breakup(body.size_range, body.size_breakup))


@app.get("/api/catalogue/{article_id}")
def get_article(article_id: str, store: KoreStore = Depends(get_store)):
    return envelope(store.get_article(article_id))


@app.post("/api/catalogue", status_code=201)
def create_article(form: CatalogueForm, store: KoreStore = Depends(get_store)):
    return envelope(store.submit_catalogue(form), "Created")


@app.put("/api/catalogue/{article_id}")
def update_article(article_id: str, form: CatalogueForm, store: KoreStore = Depends(get_store)):
    return envelope(store.submit_catalogue(form, editing_id=article_id), "Updated")


@app.delete("/api/catalogue/{article_id}")
def delete_article(article_id: str, store: KoreStore = Depends(get_store)):
    store.delete_article(article_id)
    return envelope(None, "Deleted")


@app.post("/api/catalogue/{article_id}/promote")
def promote_article(article_id: str, store: KoreStore = Depends(get_store)):
    return envelope(store.promote_article(article_id), "Moved to available")


@app.get("/api/assortments")
def list_assortments(gender: Optional[Gender] = None):
    """Standard carton mixes, or the one for a gender."""
    if gender is not None:
        return envelope(assortment_for(gender))
    assortments = standard_assortments()
    return envelope(assortments, meta={"total": len(assortments)})


@app.get("/api/distributors")
def list_distributors():
    distributors = distributor_directory()
    return envelope(distributors, meta={"total": len(distributors)})


# --- Product master ---


@app.get("/api/product-master/taxonomy")
def get_taxonomy(store: KoreStore = Depends(get_store)):
    return envelope(store.taxonomy.to_dict())


@app.post("/api/product-master/categories")
def add_category(body: NameRequest, store: KoreStore = Depends(get_store)):
    store.add_category(body.name)
    return envelope(store.taxonomy.to_dict(), "Category added")


@app.delete("/api/product-master/categories/{category}")
def delete_category(category: str, store: KoreStore = Depends(get_store)):
    store.delete_category(category)
    return envelope(store.taxonomy.to_dict(), "Category deleted")


@app.post("/api/product-master/brands")
def add_brand(body: BrandRequest, store: KoreStore = Depends(get_store)):
    store.add_brand(body.category, body.name)
    return envelope(store.taxonomy.to_dict(), "Brand added")


@app.delete("/api/product-master/brands/{category}/{brand}")
def delete_brand(category: str, brand: str, store: KoreStore = Depends(get_store)):
    store.delete_brand(category, brand)
    return envelope(store.taxonomy.to_dict(), "Brand deleted")


@app.post("/api/product-master/manufacturers")
def add_manufacturer(body: NameRequest, store: KoreStore = Depends(get_store)):
    store.add_manufacturer(body.name)
    return envelope(store.taxonomy.to_dict(), "Manufacturer added")


@app.delete("/api/product-master/manufacturers/{manufacturer}")
def delete_manufacturer(manufacturer: str, store: KoreStore = Depends(get_store)):
    store.delete_manufacturer(manufacturer)
    return envelope(store.taxonomy.to_dict(), "Manufacturer deleted")


@app.post("/api/product-master/size-ranges")
def preview_add_size_range(body: SizeRangeAddRequest):
    return envelope(add_size_range(body.size_ranges, body.value))


@app.post("/api/product-master/variants")
def preview_variants(body: VariantPreviewRequest):
    variants = build_variants(
        body.item_name, body.colors, body.size_ranges, body.mrp, body.hsn_code, body.variants
    )
    return envelope(variants, meta={"total": len(variants)})


@app.post("/api/product-master/variants/copy")
def copy_variant_field(body: CopyToAllRequest):
    return envelope(copy_to_all(body.variants, body.field, body.size_range))


@app.post("/api/product-master/products", status_code=201)
def create_product(form: ProductForm, store: KoreStore = Depends(get_store)):
    return envelope(store.create_product(form), "Product Created Successfully!")


# --- Vendors ---


@app.get("/api/vendors")
def list_vendors(q: str = "", store: KoreStore = Depends(get_store)):
    vendors = store.search_vendors(q)
    return envelope(vendors, meta={"total": len(vendors)})


@app.get("/api/vendors/{vendor_id}")
def get_vendor(vendor_id: str, store: KoreStore = Depends(get_store)):
    return envelope(store.get_vendor(vendor_id))


@app.post("/api/vendors", status_code=201)
def create_vendor(vendor: Vendor, store: KoreStore = Depends(get_store)):
    return envelope(store.add_vendor(vendor), "Vendor saved")


@app.put("/api/vendors/{vendor_id}")
def update_vendor(vendor_id: str, vendor: Vendor, store: KoreStore = Depends(get_store)):
    return envelope(store.update_vendor(vendor_id, vendor), "Vendor updated")


@app.post("/api/vendors/{vendor_id}/copy-billing-address")
def copy_vendor_billing(vendor_id: str, store: KoreStore = Depends(get_store)):
    vendor = copy_billing_to_shipping(store.get_vendor(vendor_id))
    return envelope(store.update_vendor(vendor_id, vendor), "Shipping address updated")


@app.delete("/api/vendors/{vendor_id}")
def delete_vendor(vendor_id: str, store: KoreStore = Depends(get_store)):
    store.delete_vendor(vendor_id)
    return envelope(None, "Deleted")


# --- Inventory ---


@app.get("/api/inventory")
def list_inventory(store: KoreStore = Depends(get_store)):
    return envelope(store.ledger.records())


@app.post("/api/inventory/inward")
def inward(body: MovementRequest, store: KoreStore = Depends(get_store)):
    record = store.inward(body.article_id, body.cartons, body.type or "INWARD", body.note)
    return envelope(record, "Stock added")


@app.post("/api/inventory/outward")
def outward(body: MovementRequest, store: KoreStore = Depends(get_store)):
    record = store.outward(body.article_id, body.cartons, body.type or "OUTWARD", body.note)
    return envelope(record, "Stock removed")


@app.get("/api/inventory/low-stock")
def low_stock(threshold: Optional[int] = None, store: KoreStore = Depends(get_store)):
    threshold = store.settings.low_stock_threshold if threshold is None else threshold
    report = dashboard.low_stock_report(store.articles, store.ledger.records(), threshold)
    return envelope(report.to_dict(orient="records"), meta={"threshold": threshold, "total": len(report)})


@app.get("/api/inventory/booking-status")
def booking_status(store: KoreStore = Depends(get_store)):
    return envelope(dashboard.booking_status(store.articles, store.ledger.records(), store.orders))


@app.get("/api/inventory/movements")
def movements(store: KoreStore = Depends(get_store)):
    return envelope(store.movements)


# --- Cart ---


def cart_payload(store: KoreStore) -> Dict[str, Any]:
    return {
        "lines": dashboard.cart_lines_summary(store.cart, store.articles),
        "total": store.cart_total(),
        "items": store.cart_items_count(),
    }


@app.get("/api/cart")
def get_cart(store: KoreStore = Depends(get_store)):
    return envelope(cart_payload(store))


@app.post("/api/cart/add")
def add_to_cart(body: ArticleRef, store: KoreStore = Depends(get_store)):
    store.add_to_cart(body.article_id)
    return envelope(cart_payload(store))


@app.post("/api/cart/remove")
def remove_from_cart(body: ArticleRef, store: KoreStore = Depends(get_store)):
    store.remove_from_cart(body.article_id)
    return envelope(cart_payload(store))


@app.delete("/api/cart/{article_id}")
def clear_cart_item(article_id: str, store: KoreStore = Depends(get_store)):
    store.clear_cart_item(article_id)
    return envelope(cart_payload(store))


# --- Orders ---


@app.post("/api/orders", status_code=201)
def place_order(store: KoreStore = Depends(get_store)):
    return envelope(store.place_order(), "Order booked")


@app.get("/api/orders")
def list_orders(
    distributor_id: Optional[str] = Query(None, alias="distributorId"),
    store: KoreStore = Depends(get_store),
):
    orders = store.orders_for_distributor(distributor_id) if distributor_id else store.orders
    return envelope(orders, meta={"total": len(orders)})


@app.get("/api/orders/export")
def export_orders(status: Optional[OrderStatus] = None, store: KoreStore = Depends(get_store)):
    csv_text = dashboard.orders_to_csv(store.orders, store.articles, status)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="orders.csv"'},
    )


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, store: KoreStore = Depends(get_store)):
    order = store.get_order(order_id)
    following = next_status(order.status)
    return envelope(order, meta={"nextStatus": following.value if following else None})


@app.patch("/api/orders/{order_id}/status")
def update_order_status(order_id: str, body: StatusUpdate, store: KoreStore = Depends(get_store)):
    return envelope(store.update_order_status(order_id, body.status), "Status updated")


@app.post("/api/orders/{order_id}/advance")
def advance_order(order_id: str, store: KoreStore = Depends(get_store)):
    return envelope(store.advance_order(order_id), "Status updated")


# --- Purchase orders ---


@app.get("/api/purchase-orders")
def list_purchase_orders(store: KoreStore = Depends(get_store)):
    return envelope(store.purchase_orders, meta={"total": len(store.purchase_orders)})


@app.post("/api/purchase-orders", status_code=201)
def create_purchase_order(body: PurchaseOrderRequest, store: KoreStore = Depends(get_store)):
    record = store.create_purchase_order(body.data, body.mode, body.linked_catalog_id)
    return envelope(record, "Purchase order submitted")


# --- Goods receipt ---


def grn_payload(session: GRNSession) -> Dict[str, Any]:
    return {
        "state": session.state.value,
        "reference": dump(session.reference),
        "currentPairs": list(session.current_pairs),
        "currentCount": session.current_count,
        "cartons": dump(session.cartons),
        "cartonSerial": session.carton_serial,
        "canSubmit": session.can_submit,
        "history": dump(session.history),
    }


@app.get("/api/grn")
def grn_state(session: GRNSession = Depends(get_grn_session)):
    return envelope(grn_payload(session))


@app.get("/api/grn/references")
def grn_references(q: str = "", store: KoreStore = Depends(get_store)):
    references = filter_references(store.grn_references(), q)
    return envelope(references, meta={"total": len(references)})


@app.post("/api/grn/select")
def grn_select(
    body: ReferenceSelection,
    store: KoreStore = Depends(get_store),
    session: GRNSession = Depends(get_grn_session),
):
    reference = store.get_grn_reference(body.reference_id) if body.reference_id else None
    session.select_reference(reference)
    return envelope(grn_payload(session))


@app.post("/api/grn/scan")
def grn_scan(body: ScanRequest, session: GRNSession = Depends(get_grn_session)):
    result = session.scan(body.code)
    payload = grn_payload(session)
    payload["lockedCarton"] = dump(result.locked_carton)
    if not result.accepted:
        return {"success": False, "message": result.error, "data": payload, "meta": None}
    message = f"Carton {result.locked_carton.carton_barcode} locked" if result.locked_carton else "OK"
    return envelope(payload, message)


@app.post("/api/grn/rescan")
def grn_rescan(session: GRNSession = Depends(get_grn_session)):
    session.rescan_carton()
    return envelope(grn_payload(session))


@app.post("/api/grn/cartons/remove")
def grn_remove_carton(body: RemoveCartonRequest, session: GRNSession = Depends(get_grn_session)):
    removed = session.remove_carton(body.carton_barcode, lambda prompt: body.confirmed)
    message = "Carton removed" if removed else "Carton not removed"
    return envelope(grn_payload(session), message)


@app.post("/api/grn/submit")
def grn_submit(
    store: KoreStore = Depends(get_store),
    session: GRNSession = Depends(get_grn_session),
):
    item = store.receive_grn(session)
    if item is None:
        raise CatalogueValidationError("Lock at least one carton and finish the open carton before submitting")
    return envelope(grn_payload(session), f"{item.grn_no} submitted")


@app.post("/api/grn/reset")
def grn_reset(session: GRNSession = Depends(get_grn_session)):
    session.reset()
    return envelope(grn_payload(session))


# --- Dashboard ---


@app.get("/api/dashboard/admin")
def admin_dashboard(store: KoreStore = Depends(get_store)):
    return envelope(dashboard.admin_summary(store.articles, store.ledger.records(), store.orders))


@app.get("/api/dashboard/distributor/{distributor_id}")
def distributor_dashboard(distributor_id: str, store: KoreStore = Depends(get_store)):
    cart_balance = store.cart_total() if store.user and store.user.id == distributor_id else 0.0
    return envelope(dashboard.distributor_summary(distributor_id, store.orders, cart_balance))


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
