"""
Dashboard Module

Figures for the admin and distributor dashboards, the booking-status view of
the master inventory, the low-stock report and the orders CSV export. Chart
and map rendering are left to the front end; everything here is plain data.
"""

import io
import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from constants.catalogue import DEFAULT_LOW_STOCK_THRESHOLD, PAIRS_PER_CARTON
from constants.schemas import OPEN_ORDER_STATUSES, Article, CartLine, InventoryRecord, Order, OrderStatus
from utils.inventory_ledger import is_low_stock, stock_status

logger = logging.getLogger(__name__)

ORDER_EXPORT_COLUMNS = [
    "Order ID",
    "Date",
    "Distributor",
    "Status",
    "Article ID",
    "SKU",
    "Article",
    "Cartons",
    "Pairs",
    "Line Amount",
]


def _orders_frame(orders: List[Order]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": o.id,
                "distributor_id": o.distributor_id,
                "distributor_name": o.distributor_name,
                "status": o.status.value,
                "total_amount": o.total_amount,
                "total_cartons": o.total_cartons,
            }
            for o in orders
        ],
        columns=["id", "distributor_id", "distributor_name", "status", "total_amount", "total_cartons"],
    )


def admin_summary(
    articles: List[Article], inventory: List[InventoryRecord], orders: List[Order]
) -> Dict[str, Any]:
    """
    Headline figures for the admin dashboard.

    Returns:
        dict: total_revenue, total_cartons, order_count, category_stock
            (actual cartons per gender) and top_distributors (top 5 by order value)
    """
    orders_df = _orders_frame(orders)
    total_revenue = float(orders_df["total_amount"].sum()) if not orders_df.empty else 0.0

    stock_df = pd.DataFrame(
        [{"article_id": r.article_id, "actual_stock": r.actual_stock} for r in inventory],
        columns=["article_id", "actual_stock"],
    )
    category_df = pd.DataFrame(
        [{"article_id": a.id, "category": a.category.value} for a in articles],
        columns=["article_id", "category"],
    )
    merged = stock_df.merge(category_df, on="article_id", how="inner")
    category_stock = {key: 0 for key in ("MEN", "WOMEN", "KIDS")}
    if not merged.empty:
        for category, cartons in merged.groupby("category")["actual_stock"].sum().items():
            category_stock[category] = int(cartons)

    top_distributors = []
    if not orders_df.empty:
        grouped = (
            orders_df.groupby("distributor_name")["total_amount"]
            .sum()
            .sort_values(ascending=False)
            .head(5)
        )
        top_distributors = [{"name": name, "value": float(value)} for name, value in grouped.items()]

    return {
        "total_revenue": total_revenue,
        "total_cartons": int(stock_df["actual_stock"].sum()) if not stock_df.empty else 0,
        "order_count": len(orders),
        "category_stock": category_stock,
        "top_distributors": top_distributors,
    }


def distributor_summary(
    distributor_id: str, orders: List[Order], cart_balance: float = 0.0
) -> Dict[str, Any]:
    mine = [o for o in orders if o.distributor_id == distributor_id]
    return {
        "my_orders": len(mine),
        "pending": sum(1 for o in mine if o.status in OPEN_ORDER_STATUSES),
        "in_transit": sum(1 for o in mine if o.status == OrderStatus.DISPATCHED),
        "cart_balance": float(cart_balance),
    }


def booking_status(
    articles: List[Article], inventory: List[InventoryRecord], orders: List[Order]
) -> Dict[str, Any]:
    """
    Booking view of the master inventory.

    Pending allocations count the cartons of BOOKED/PENDING orders per
    article. An article is at shortfall risk when its available stock is
    negative.
    """
    pending: Dict[str, int] = {}
    for order in orders:
        if order.status not in OPEN_ORDER_STATUSES:
            continue
        for item in order.items:
            pending[item.article_id] = pending.get(item.article_id, 0) + item.carton_count

    names = {a.id: a for a in articles}
    rows = []
    for record in inventory:
        article = names.get(record.article_id)
        rows.append(
            {
                "article_id": record.article_id,
                "sku": article.sku if article else "",
                "name": article.name if article else "",
                "actual_stock": record.actual_stock,
                "reserved_stock": record.reserved_stock,
                "available_stock": record.available_stock,
                "pending_allocations": pending.get(record.article_id, 0),
                "status": stock_status(record),
            }
        )

    return {
        "rows": rows,
        "total_pending_allocations": sum(pending.values()),
        "total_reserved": sum(r.reserved_stock for r in inventory),
        "free_to_book": sum(max(0, r.available_stock) for r in inventory),
        "shortfall_risk": sum(1 for r in inventory if r.available_stock < 0),
    }


def low_stock_report(
    articles: List[Article],
    inventory: List[InventoryRecord],
    threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> pd.DataFrame:
    """Articles whose available stock is below the threshold, lowest first."""
    names = {a.id: a for a in articles}
    rows = [
        {
            "article_id": r.article_id,
            "sku": names[r.article_id].sku if r.article_id in names else "",
            "name": names[r.article_id].name if r.article_id in names else "",
            "available_stock": r.available_stock,
            "status": stock_status(r),
        }
        for r in inventory
        if is_low_stock(r, threshold)
    ]
    df = pd.DataFrame(rows, columns=["article_id", "sku", "name", "available_stock", "status"])
    if not df.empty:
        df = df.sort_values("available_stock").reset_index(drop=True)
        logger.info(f"{len(df)} articles below low-stock threshold {threshold}")
    return df


def orders_to_csv(
    orders: List[Order], articles: List[Article], status: Optional[OrderStatus] = None
) -> str:
    """
    Export orders as CSV, one row per order item.

    Args:
        orders: Orders to export
        articles: Catalogue, used for SKU and name
        status: Only export orders in this status

    Returns:
        str: CSV text with a header row
    """
    names = {a.id: a for a in articles}
    rows = []
    for order in orders:
        if status is not None and order.status != status:
            continue
        for item in order.items:
            article = names.get(item.article_id)
            rows.append(
                {
                    "Order ID": order.id,
                    "Date": order.date,
                    "Distributor": order.distributor_name,
                    "Status": order.status.value,
                    "Article ID": item.article_id,
                    "SKU": article.sku if article else "",
                    "Article": article.name if article else "",
                    "Cartons": item.carton_count,
                    "Pairs": item.pair_count,
                    "Line Amount": item.price,
                }
            )

    buffer = io.StringIO()
    pd.DataFrame(rows, columns=ORDER_EXPORT_COLUMNS).to_csv(buffer, index=False)
    return buffer.getvalue()


def cart_lines_summary(cart: List[CartLine], articles: List[Article]) -> List[Dict[str, Any]]:
    """Cart lines with article details for display."""
    names = {a.id: a for a in articles}
    lines = []
    for line in cart:
        article = names.get(line.article_id)
        if article is None:
            continue
        lines.append(
            {
                "article_id": line.article_id,
                "sku": article.sku,
                "name": article.name,
                "cartons": line.cartons,
                "pairs": line.cartons * PAIRS_PER_CARTON,
                "amount": article.price_per_pair * PAIRS_PER_CARTON * line.cartons,
            }
        )
    return lines
