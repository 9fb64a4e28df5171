import logging
from collections import Counter
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.orm import Session, joinedload

from app.models import Product, StockMovement, Supplier, User
from app.schemas import (
    ProductCreate, ProductUpdate, Product as ProductSchema, StockAdjustment, StockAdjustmentResult,
    StockMovement as StockMovementSchema, BulkPriceUpdate, BulkPriceUpdateResult,
    PriceCalculationRequest, PriceCalculation, ProductStatistics, Page, MessageResponse
)
from app.services.dependency import get_tenant_db, require_permission
from app.services.listing import active, get_or_404, soft_delete, apply_updates, contains_any, paginate
from app.services.pricing import calculate_sale_price, to_decimal, money, HUNDRED
from app.utils.rate_limiter import limiter, RateLimits

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_COLUMNS = {
    "name": Product.name,
    "code": Product.code,
    "sale_price": Product.sale_price,
    "current_stock": Product.current_stock,
    "created_at": Product.created_at,
}


def with_supplier(product: Product) -> Product:
    product.supplier_name = product.supplier.name if product.supplier else None
    return product


def ensure_unique(db: Session, code: Optional[str], barcode: Optional[str], exclude_id: Optional[int] = None):
    if code:
        query = active(db.query(Product), Product).filter(Product.code == code)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=400, detail="Product code already exists")
    if barcode:
        query = active(db.query(Product), Product).filter(Product.barcode == barcode)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=400, detail="Barcode already exists")


def ensure_supplier(db: Session, supplier_id: Optional[int]):
    if supplier_id is not None:
        get_or_404(db, Supplier, supplier_id, "Supplier not found")


# ============================================================================
# Listing & lookups
# ============================================================================

@router.get("/", response_model=Page[ProductSchema])
async def list_products(
    product_type: Optional[str] = Query(None, alias="type"),
    category: Optional[str] = None,
    subcategory: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    is_active: Optional[bool] = Query(None, alias="active"),
    is_featured: Optional[bool] = Query(None, alias="isFeatured"),
    visible_in_catalog: Optional[bool] = Query(None, alias="visibleInCatalog"),
    low_stock: Optional[bool] = Query(None, alias="lowStock"),
    out_of_stock: Optional[bool] = Query(None, alias="outOfStock"),
    supplier_id: Optional[int] = Query(None, alias="supplierId"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize", ge=1, le=200),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view"))
):
    """List products with filters, sorting and pagination"""
    query = active(db.query(Product), Product).options(joinedload(Product.supplier))

    if product_type:
        query = query.filter(Product.type == product_type)
    if category:
        query = query.filter(Product.category == category)
    if subcategory:
        query = query.filter(Product.subcategory == subcategory)
    if status_filter:
        query = query.filter(Product.status == status_filter)
    if is_active is not None:
        query = query.filter(Product.is_active == is_active)
    if is_featured is not None:
        query = query.filter(Product.is_featured == is_featured)
    if visible_in_catalog is not None:
        query = query.filter(Product.visible_in_catalog == visible_in_catalog)
    if low_stock:
        query = query.filter(Product.current_stock <= Product.min_stock)
    if out_of_stock:
        query = query.filter(Product.current_stock <= 0)
    if supplier_id:
        query = query.filter(Product.supplier_id == supplier_id)
    if min_price is not None:
        query = query.filter(Product.sale_price >= min_price)
    if max_price is not None:
        query = query.filter(Product.sale_price <= max_price)
    if search:
        query = query.filter(contains_any([Product.code, Product.name, Product.barcode], search))

    sort_column = SORT_COLUMNS.get(sort_by, Product.name)
    query = query.order_by(sort_column.desc() if sort_order.lower() == "desc" else sort_column.asc())

    result = paginate(query, page, page_size)
    result["data"] = [with_supplier(p) for p in result["data"]]
    return result


@router.get("/stats", response_model=ProductStatistics)
async def get_product_stats(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view"))
):
    products = active(db.query(Product), Product).all()

    value_cost = sum((to_decimal(p.cost_price) * (p.current_stock or 0) for p in products), to_decimal(0))
    value_sale = sum((to_decimal(p.sale_price) * (p.current_stock or 0) for p in products), to_decimal(0))

    by_stock_value = sorted(
        products,
        key=lambda p: to_decimal(p.cost_price) * (p.current_stock or 0),
        reverse=True
    )[:10]

    return {
        "total": len(products),
        "active": sum(1 for p in products if p.is_active),
        "outOfStock": sum(1 for p in products if (p.current_stock or 0) <= 0),
        "lowStock": sum(1 for p in products if (p.current_stock or 0) <= (p.min_stock or 0)),
        "inventoryValueCost": float(money(value_cost)),
        "inventoryValueSale": float(money(value_sale)),
        "byCategory": dict(Counter(p.category or "uncategorized" for p in products)),
        "byType": dict(Counter(p.type for p in products)),
        "topByStockValue": [
            {
                "id": p.id,
                "code": p.code,
                "name": p.name,
                "currentStock": p.current_stock,
                "stockValue": float(money(to_decimal(p.cost_price) * (p.current_stock or 0))),
            }
            for p in by_stock_value
        ],
    }


@router.get("/categories", response_model=List[str])
async def list_product_categories(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view"))
):
    rows = active(db.query(Product.category), Product).filter(
        Product.category.isnot(None)
    ).distinct().order_by(Product.category).all()
    return [row[0] for row in rows]


@router.get("/low-stock", response_model=List[ProductSchema])
async def list_low_stock_products(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view_stock"))
):
    products = active(db.query(Product), Product).filter(
        Product.track_stock == True,
        Product.current_stock <= Product.min_stock
    ).order_by(Product.current_stock).all()
    return [with_supplier(p) for p in products]


@router.get("/reorder-needed", response_model=List[ProductSchema])
async def list_products_to_reorder(
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view_stock"))
):
    products = active(db.query(Product), Product).filter(
        Product.track_stock == True,
        Product.reorder_point.isnot(None),
        Product.current_stock <= Product.reorder_point
    ).order_by(Product.name).all()
    return [with_supplier(p) for p in products]


@router.get("/code/{code}", response_model=ProductSchema)
async def get_product_by_code(
    code: str,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view"))
):
    product = active(db.query(Product), Product).filter(Product.code == code).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return with_supplier(product)


@router.get("/barcode/{barcode}", response_model=ProductSchema)
async def get_product_by_barcode(
    barcode: str,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view"))
):
    product = active(db.query(Product), Product).filter(Product.barcode == barcode).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return with_supplier(product)


# ============================================================================
# Pricing
# ============================================================================

@router.post("/calculate-price", response_model=PriceCalculation)
async def calculate_price(
    data: PriceCalculationRequest,
    current_user: User = Depends(require_permission("products.view"))
):
    result = calculate_sale_price(data.cost_price, data.profit_margin, data.vat_rate)
    if result is None:
        raise HTTPException(status_code=400, detail="Profit margin must be less than 100%")
    return result


@router.post("/bulk/price-update", response_model=BulkPriceUpdateResult)
@limiter.limit(RateLimits.BULK_OPERATIONS)
async def bulk_update_prices(
    request: Request,
    data: BulkPriceUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.bulk_update"))
):
    """Adjust sale prices and/or VAT rate for many products in one transaction"""
    if data.percentage_adjustment is None and data.fixed_adjustment is None and data.new_vat_rate is None:
        raise HTTPException(status_code=400, detail="No price adjustments specified")

    query = active(db.query(Product), Product)
    if data.product_ids:
        query = query.filter(Product.id.in_(data.product_ids))
    else:
        query = query.filter(Product.is_active == True)
    products = query.all()

    for product in products:
        price = to_decimal(product.sale_price)
        if data.percentage_adjustment is not None:
            price = price * (1 + to_decimal(data.percentage_adjustment) / HUNDRED)
        if data.fixed_adjustment is not None:
            price = price + to_decimal(data.fixed_adjustment)
        product.sale_price = money(max(price, to_decimal(0)))
        if data.new_vat_rate is not None:
            product.vat_rate = to_decimal(data.new_vat_rate)

    db.commit()

    logger.info(f"Bulk price update on {len(products)} products by user {current_user.id}")
    return {"productsUpdated": len(products)}


# ============================================================================
# Product CRUD
# ============================================================================

@router.get("/{product_id}", response_model=ProductSchema)
async def get_product(
    product_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view"))
):
    return with_supplier(get_or_404(db, Product, product_id, "Product not found"))


@router.post("/", response_model=ProductSchema, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.create"))
):
    ensure_unique(db, product_data.code, product_data.barcode)
    ensure_supplier(db, product_data.supplier_id)

    product = Product(**product_data.model_dump(), created_by=current_user.id)
    db.add(product)
    db.commit()
    db.refresh(product)

    logger.info(f"Product created: {product.code} by user {current_user.id}")
    return with_supplier(product)


@router.put("/{product_id}", response_model=ProductSchema)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.update"))
):
    product = get_or_404(db, Product, product_id, "Product not found")

    update_data = product_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    ensure_unique(
        db,
        update_data.get("code") if update_data.get("code") != product.code else None,
        update_data.get("barcode") if update_data.get("barcode") != product.barcode else None,
        exclude_id=product.id
    )
    ensure_supplier(db, update_data.get("supplier_id"))

    apply_updates(product, update_data)
    db.commit()
    db.refresh(product)

    logger.info(f"Product updated: {product.code} by user {current_user.id}")
    return with_supplier(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.delete"))
):
    product = get_or_404(db, Product, product_id, "Product not found")
    soft_delete(product)
    db.commit()

    logger.info(f"Product deleted: {product.code} by user {current_user.id}")
    return {"message": "Product deleted successfully"}


# ============================================================================
# Stock
# ============================================================================

@router.patch("/{product_id}/stock", response_model=StockAdjustmentResult)
async def adjust_stock(
    product_id: int,
    adjustment: StockAdjustment,
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.manage_stock"))
):
    product = get_or_404(db, Product, product_id, "Product not found")

    previous_stock = product.current_stock or 0
    new_stock = previous_stock + adjustment.quantity
    if new_stock < 0:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock. Current: {previous_stock}, Requested: {abs(adjustment.quantity)}"
        )

    product.current_stock = new_stock
    movement = StockMovement(
        product_id=product.id,
        movement_type=adjustment.movement_type,
        quantity=adjustment.quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        unit_cost=adjustment.unit_cost,
        reference=adjustment.reference,
        notes=adjustment.notes,
        created_by=current_user.id,
    )
    db.add(movement)
    db.commit()
    db.refresh(product)
    db.refresh(movement)

    logger.info(
        f"Stock for product {product.code}: {previous_stock} -> {new_stock} "
        f"({adjustment.movement_type}) by user {current_user.id}"
    )
    return {"product": with_supplier(product), "movement": movement}


@router.get("/{product_id}/movements", response_model=List[StockMovementSchema])
async def list_stock_movements(
    product_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_tenant_db),
    current_user: User = Depends(require_permission("products.view_stock"))
):
    get_or_404(db, Product, product_id, "Product not found")
    return db.query(StockMovement).filter(
        StockMovement.product_id == product_id
    ).order_by(StockMovement.id.desc()).limit(limit).all()
