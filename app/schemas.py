from pydantic import BaseModel, EmailStr, Field, computed_field, model_validator
from datetime import datetime, date, time
from typing import Optional, List, Literal, Any, Dict, Generic, TypeVar

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated list envelope"""
    data: List[T]
    total: int
    page: int
    pageSize: int
    totalPages: int


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# AUTH / USERS / TENANTS
# =============================================================================

class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class UserCreate(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    password: str = Field(..., min_length=8)
    role_id: Optional[int] = None


class User(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    is_active: bool
    tenant_id: Optional[int] = None
    role_id: Optional[int] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProfile(User):
    tenant_name: Optional[str] = None
    role_name: Optional[str] = None
    permissions: List[str] = []


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=2, pattern=r"^[a-z0-9][a-z0-9-]*$")
    database_url: Optional[str] = None
    is_active: bool = True


class TenantUpdate(BaseModel):
    name: Optional[str] = None
    database_url: Optional[str] = None
    is_active: Optional[bool] = None


class Tenant(BaseModel):
    id: int
    name: str
    slug: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# CONTACTS / ADDRESSES / DOCUMENTS (polymorphic sub-records)
# =============================================================================

ContactType = Literal["email", "phone", "mobile", "fax", "website", "other"]
AddressType = Literal["billing", "shipping", "headquarters", "home", "other"]


class ContactCreate(BaseModel):
    entity_id: int
    contact_type: ContactType
    contact_value: str = Field(..., min_length=1)
    is_primary: bool = False
    is_verified: bool = False
    label: Optional[str] = None
    notes: Optional[str] = None


class ContactUpdate(BaseModel):
    contact_type: Optional[ContactType] = None
    contact_value: Optional[str] = None
    is_primary: Optional[bool] = None
    is_verified: Optional[bool] = None
    label: Optional[str] = None
    notes: Optional[str] = None


class Contact(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    contact_type: str
    contact_value: str
    is_primary: bool
    is_verified: bool
    label: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AddressCreate(BaseModel):
    entity_id: int
    address_type: AddressType = "other"
    is_primary: bool = False
    label: Optional[str] = None
    street_line1: str = Field(..., min_length=1)
    street_line2: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    country: str = "PT"
    notes: Optional[str] = None


class AddressUpdate(BaseModel):
    address_type: Optional[AddressType] = None
    is_primary: Optional[bool] = None
    label: Optional[str] = None
    street_line1: Optional[str] = None
    street_line2: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None


class Address(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    address_type: str
    is_primary: bool
    label: Optional[str] = None
    street_line1: str
    street_line2: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentCreate(BaseModel):
    entity_id: int
    document_type: str
    document_number: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    is_confidential: bool = False


class DocumentUpdate(BaseModel):
    document_type: Optional[str] = None
    document_number: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    is_confidential: Optional[bool] = None


class Document(BaseModel):
    id: int
    entity_type: str
    entity_id: int
    document_type: str
    document_number: Optional[str] = None
    title: str
    description: Optional[str] = None
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    issue_date: Optional[date] = None
    expiry_date: Optional[date] = None
    is_confidential: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =============================================================================
# COMPANIES
# =============================================================================

CompanyType = Literal["client", "supplier", "partner", "internal"]
CompanyStatus = Literal["active", "inactive", "pending", "suspended"]


class CompanyBase(BaseModel):
    name: str = Field(..., min_length=1)
    trade_name: Optional[str] = None
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    logo_url: Optional[str] = None
    color: Optional[str] = None
    company_type: CompanyType = "client"
    legal_nature: Optional[str] = None
    share_capital: Optional[float] = None
    registration_number: Optional[str] = None
    incorporation_date: Optional[date] = None
    segment: Optional[str] = None
    industry_sector: Optional[str] = None
    cae_code: Optional[str] = None
    client_number: Optional[str] = None
    supplier_number: Optional[str] = None
    payment_terms: Optional[str] = None
    preferred_payment_method: Optional[str] = None
    credit_limit: Optional[float] = None
    commercial_discount: Optional[float] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    status: CompanyStatus = "active"
    notes: Optional[str] = None
    external_ref: Optional[str] = None


class CompanyCreate(CompanyBase):
    code: str = Field(..., min_length=1)


class CompanyUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    trade_name: Optional[str] = None
    legal_name: Optional[str] = None
    tax_id: Optional[str] = None
    logo_url: Optional[str] = None
    color: Optional[str] = None
    company_type: Optional[CompanyType] = None
    legal_nature: Optional[str] = None
    share_capital: Optional[float] = None
    registration_number: Optional[str] = None
    incorporation_date: Optional[date] = None
    segment: Optional[str] = None
    industry_sector: Optional[str] = None
    cae_code: Optional[str] = None
    client_number: Optional[str] = None
    supplier_number: Optional[str] = None
    payment_terms: Optional[str] = None
    preferred_payment_method: Optional[str] = None
    credit_limit: Optional[float] = None
    commercial_discount: Optional[float] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    status: Optional[CompanyStatus] = None
    notes: Optional[str] = None
    external_ref: Optional[str] = None


class Company(CompanyBase):
    id: int
    code: str
    company_type: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CompanyDetail(Company):
    contacts: List[Contact] = []
    addresses: List[Address] = []


class CompanyStatistics(BaseModel):
    totalCompanies: int
    activeCompanies: int
    clients: int
    suppliers: int
    partners: int
    companiesThisMonth: int


# =============================================================================
# EMPLOYEES
# =============================================================================

EmploymentStatus = Literal["active", "on_leave", "terminated"]


class EmployeeType(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class EmployeeBase(BaseModel):
    number: Optional[str] = None
    employee_type_id: Optional[int] = None
    company_id: Optional[int] = None
    department_id: Optional[int] = None
    manager_id: Optional[int] = None
    full_name: str = Field(..., min_length=1)
    short_name: Optional[str] = None
    job_title: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None
    birthplace: Optional[str] = None
    nationality: Optional[str] = None
    marital_status: Optional[str] = None
    photo_url: Optional[str] = None
    hire_date: Optional[date] = None
    employment_status: EmploymentStatus = "active"
    notes: Optional[str] = None


class EmployeeCreate(EmployeeBase):
    pass


class EmployeeUpdate(BaseModel):
    number: Optional[str] = None
    employee_type_id: Optional[int] = None
    company_id: Optional[int] = None
    department_id: Optional[int] = None
    manager_id: Optional[int] = None
    full_name: Optional[str] = None
    short_name: Optional[str] = None
    job_title: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[date] = None
    birthplace: Optional[str] = None
    nationality: Optional[str] = None
    marital_status: Optional[str] = None
    photo_url: Optional[str] = None
    hire_date: Optional[date] = None
    employment_status: Optional[EmploymentStatus] = None
    notes: Optional[str] = None


class Employee(EmployeeBase):
    id: int
    employment_status: str
    employee_type_name: Optional[str] = None
    company_name: Optional[str] = None
    manager_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EmployeeStatistics(BaseModel):
    total: int
    active: int
    on_leave: int
    terminated: int
    hiredThisMonth: int
    averageAge: Optional[float] = None


class BenefitCreate(BaseModel):
    employee_id: int
    benefit_type: str = Field(..., min_length=1)
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_cost: Optional[float] = None
    employee_contribution: Optional[float] = None
    company_contribution: Optional[float] = None
    notes: Optional[str] = None


class BenefitUpdate(BaseModel):
    benefit_type: Optional[str] = None
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_cost: Optional[float] = None
    employee_contribution: Optional[float] = None
    company_contribution: Optional[float] = None
    notes: Optional[str] = None


class Benefit(BaseModel):
    id: int
    employee_id: int
    benefit_type: str
    provider: Optional[str] = None
    policy_number: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_cost: Optional[float] = None
    employee_contribution: Optional[float] = None
    company_contribution: Optional[float] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# PRODUCTS
# =============================================================================

ProductType = Literal["product", "service"]
ProductStatus = Literal["active", "inactive", "discontinued", "out_of_stock"]
MovementType = Literal["purchase", "sale", "adjustment", "return", "transfer", "damaged", "lost", "initial"]


class ProductBase(BaseModel):
    barcode: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    type: ProductType = "product"
    category: Optional[str] = None
    subcategory: Optional[str] = None
    unit: str = "un"
    cost_price: float = Field(0, ge=0)
    sale_price: float = Field(0, ge=0)
    promotional_price: Optional[float] = Field(None, ge=0)
    promotion_start_date: Optional[date] = None
    promotion_end_date: Optional[date] = None
    profit_margin: Optional[float] = None
    vat_rate: float = Field(23, ge=0, le=100)
    vat_code: Optional[str] = None
    current_stock: int = 0
    min_stock: int = Field(0, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = None
    dimensions: Optional[str] = None
    supplier_reference: Optional[str] = None
    supplier_id: Optional[int] = None
    lead_time_days: Optional[int] = None
    warranty_months: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False
    visible_in_catalog: bool = True
    allow_backorders: bool = False
    track_stock: bool = True
    is_taxable: bool = True
    status: ProductStatus = "active"


class ProductCreate(ProductBase):
    code: str = Field(..., min_length=1)


class ProductUpdate(BaseModel):
    code: Optional[str] = None
    barcode: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[ProductType] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    unit: Optional[str] = None
    cost_price: Optional[float] = Field(None, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    promotional_price: Optional[float] = Field(None, ge=0)
    promotion_start_date: Optional[date] = None
    promotion_end_date: Optional[date] = None
    profit_margin: Optional[float] = None
    vat_rate: Optional[float] = Field(None, ge=0, le=100)
    vat_code: Optional[str] = None
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    reorder_quantity: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = None
    dimensions: Optional[str] = None
    supplier_reference: Optional[str] = None
    supplier_id: Optional[int] = None
    lead_time_days: Optional[int] = None
    warranty_months: Optional[int] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    visible_in_catalog: Optional[bool] = None
    allow_backorders: Optional[bool] = None
    track_stock: Optional[bool] = None
    is_taxable: Optional[bool] = None
    status: Optional[ProductStatus] = None


class Product(ProductBase):
    id: int
    code: str
    type: str
    status: str
    supplier_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StockAdjustment(BaseModel):
    movement_type: MovementType = "adjustment"
    quantity: int  # Signed: negative removes stock
    reference: Optional[str] = None
    notes: Optional[str] = None
    unit_cost: Optional[float] = None

    @model_validator(mode='after')
    def check_quantity(self):
        if self.quantity == 0:
            raise ValueError("quantity must not be zero")
        return self


class StockMovement(BaseModel):
    id: int
    product_id: int
    movement_type: str
    quantity: int
    previous_stock: int
    new_stock: int
    unit_cost: Optional[float] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StockAdjustmentResult(BaseModel):
    product: Product
    movement: StockMovement


class BulkPriceUpdate(BaseModel):
    product_ids: Optional[List[int]] = None
    percentage_adjustment: Optional[float] = None
    fixed_adjustment: Optional[float] = None
    new_vat_rate: Optional[float] = Field(None, ge=0, le=100)


class PriceCalculationRequest(BaseModel):
    cost_price: float = Field(..., ge=0)
    profit_margin: float = Field(..., ge=0)
    vat_rate: float = Field(23, ge=0, le=100)


class BulkPriceUpdateResult(BaseModel):
    productsUpdated: int


class ProductStatistics(BaseModel):
    total: int
    active: int
    outOfStock: int
    lowStock: int
    inventoryValueCost: float
    inventoryValueSale: float
    byCategory: Dict[str, int]
    byType: Dict[str, int]
    topByStockValue: List[Dict[str, Any]]


class PriceCalculation(BaseModel):
    costPrice: float
    profitMargin: float
    vatRate: float
    salePriceBeforeVAT: float
    salePriceWithVAT: float
    profit: float
    vatAmount: float


# =============================================================================
# SUPPLIERS
# =============================================================================

SupplierType = Literal["manufacturer", "distributor", "wholesaler", "service_provider"]
SupplierStatus = Literal["active", "inactive", "blocked", "pending"]


class SupplierCreate(BaseModel):
    code: str = Field(..., min_length=1)
    company_id: Optional[int] = None
    name: str = Field(..., min_length=1)
    tax_id: Optional[str] = None
    supplier_type: SupplierType = "distributor"
    payment_terms: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    status: SupplierStatus = "active"
    notes: Optional[str] = None


class SupplierUpdate(BaseModel):
    code: Optional[str] = None
    company_id: Optional[int] = None
    name: Optional[str] = None
    tax_id: Optional[str] = None
    supplier_type: Optional[SupplierType] = None
    payment_terms: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    status: Optional[SupplierStatus] = None
    notes: Optional[str] = None


class Supplier(BaseModel):
    id: int
    code: str
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    name: str
    tax_id: Optional[str] = None
    supplier_type: str
    payment_terms: Optional[str] = None
    rating: Optional[int] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SupplierBlock(BaseModel):
    reason: str = Field(..., min_length=1)


class SupplierStatistics(BaseModel):
    total: int
    active: int
    blocked: int
    manufacturers: int
    distributors: int
    thisMonth: int


# =============================================================================
# QUOTES & SALES ORDERS
# =============================================================================

class LineItemCreate(BaseModel):
    product_id: Optional[int] = None
    description: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    tax_rate: Optional[float] = Field(None, ge=0, le=100)
    tax_amount: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class QuoteItem(BaseModel):
    id: int
    line_number: int
    product_id: Optional[int] = None
    description: str
    quantity: float
    unit_price: float
    discount_percentage: Optional[float] = None
    discount_amount: float
    tax_rate: Optional[float] = None
    tax_amount: float
    line_total: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


QuoteStatus = Literal["draft", "sent", "viewed", "accepted", "rejected", "expired", "converted"]


class QuoteCreate(BaseModel):
    client_id: int
    company_id: Optional[int] = None
    assigned_to: Optional[int] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    quote_date: Optional[date] = None
    valid_until: Optional[date] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    currency: str = "EUR"
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    terms_conditions: Optional[str] = None
    items: List[LineItemCreate] = []


class QuoteUpdate(BaseModel):
    client_id: Optional[int] = None
    company_id: Optional[int] = None
    assigned_to: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    quote_date: Optional[date] = None
    valid_until: Optional[date] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    terms_conditions: Optional[str] = None
    items: Optional[List[LineItemCreate]] = None


class QuoteSummary(BaseModel):
    id: int
    quote_number: str
    client_id: int
    client_name: Optional[str] = None
    company_id: Optional[int] = None
    assigned_to: Optional[int] = None
    title: str
    status: str
    quote_date: date
    valid_until: date
    subtotal: float
    discount_percentage: Optional[float] = None
    discount_amount: float
    tax_amount: float
    total_amount: float
    currency: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def is_expired(self) -> bool:
        return self.valid_until < date.today()

    @computed_field
    @property
    def days_until_expiry(self) -> int:
        return (self.valid_until - date.today()).days

    class Config:
        from_attributes = True


class Quote(QuoteSummary):
    description: Optional[str] = None
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    notes: Optional[str] = None
    terms_conditions: Optional[str] = None
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by_id: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    converted_at: Optional[datetime] = None
    sales_order_id: Optional[int] = None
    items: List[QuoteItem] = []


class QuoteReject(BaseModel):
    reason: str = Field(..., min_length=1)


class QuoteClone(BaseModel):
    new_title: Optional[str] = None
    new_valid_until: Optional[date] = None
    new_client_id: Optional[int] = None
    as_draft: bool = True


class QuoteConvert(BaseModel):
    expected_delivery_date: Optional[date] = None
    shipping_method: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    shipping_cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class QuoteStats(BaseModel):
    totalQuotes: int
    totalValue: float
    acceptedValue: float
    rejectedValue: float
    pendingValue: float
    winRate: float
    averageValue: float
    averageTimeToClose: Optional[float] = None
    expiredCount: int
    byStatus: Dict[str, int]
    topClients: List[Dict[str, Any]]


SalesOrderStatus = Literal[
    "draft", "pending", "confirmed", "processing", "partially_shipped", "shipped",
    "partially_delivered", "delivered", "completed", "cancelled", "returned"
]
OrderPriority = Literal["low", "normal", "high", "urgent"]
OrderType = Literal["standard", "express", "custom", "wholesale", "sample"]
ShippingMethod = Literal["standard", "express", "overnight", "pickup", "freight"]
PaymentStatus = Literal["unpaid", "partially_paid", "paid", "refunded", "overdue"]


class SalesOrderItem(BaseModel):
    id: int
    line_number: int
    product_id: Optional[int] = None
    description: str
    quantity: float
    quantity_shipped: float = 0
    quantity_delivered: float = 0
    unit_price: float
    discount_percentage: Optional[float] = None
    discount_amount: float
    tax_rate: Optional[float] = None
    tax_amount: float
    line_total: float
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class SalesOrderPayment(BaseModel):
    id: int
    amount: float
    payment_date: date
    payment_method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SalesOrderCreate(BaseModel):
    client_id: int
    company_id: Optional[int] = None
    assigned_to: Optional[int] = None
    order_type: OrderType = "standard"
    priority: OrderPriority = "normal"
    status: Literal["draft", "pending"] = "draft"
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    shipping_method: Optional[ShippingMethod] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    shipping_cost: Optional[float] = Field(None, ge=0)
    currency: str = "EUR"
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    items: List[LineItemCreate] = []


class SalesOrderUpdate(BaseModel):
    client_id: Optional[int] = None
    company_id: Optional[int] = None
    assigned_to: Optional[int] = None
    order_type: Optional[OrderType] = None
    priority: Optional[OrderPriority] = None
    order_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    shipping_method: Optional[ShippingMethod] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    discount_percentage: Optional[float] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    shipping_cost: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    items: Optional[List[LineItemCreate]] = None


class SalesOrderSummary(BaseModel):
    id: int
    order_number: str
    quote_id: Optional[int] = None
    client_id: int
    client_name: Optional[str] = None
    company_id: Optional[int] = None
    assigned_to: Optional[int] = None
    original_order_id: Optional[int] = None
    order_type: str
    priority: str
    status: str
    payment_status: str
    order_date: date
    expected_delivery_date: Optional[date] = None
    subtotal: float
    discount_percentage: Optional[float] = None
    discount_amount: float
    tax_amount: float
    shipping_cost: float
    total_amount: float
    total_paid: float
    currency: str
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SalesOrder(SalesOrderSummary):
    shipping_method: Optional[str] = None
    shipping_address: Optional[str] = None
    billing_address: Optional[str] = None
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    internal_notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    confirmed_by: Optional[int] = None
    processing_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancellation_reason: Optional[str] = None
    returned_at: Optional[datetime] = None
    return_reason: Optional[str] = None
    items: List[SalesOrderItem] = []
    payments: List[SalesOrderPayment] = []


class OrderShip(BaseModel):
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    partial: bool = False


class OrderDeliver(BaseModel):
    partial: bool = False


class OrderCancel(BaseModel):
    reason: Optional[str] = None


class OrderReturn(BaseModel):
    reason: str = Field(..., min_length=1)


class PaymentCreate(BaseModel):
    amount: float = Field(..., gt=0)
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentResult(BaseModel):
    totalPaid: float
    totalOrder: float
    paymentStatus: str
    remainingAmount: float


class SalesOrderStats(BaseModel):
    totalOrders: int
    totalValue: float
    totalPaid: float
    outstanding: float
    byStatus: Dict[str, int]
    byPriority: Dict[str, int]
    byPaymentStatus: Dict[str, int]
    averageFulfillmentDays: Optional[float] = None
    overdueCount: int


# =============================================================================
# EXPENSES
# =============================================================================

ExpenseStatus = Literal["draft", "submitted", "approved", "rejected", "paid", "cancelled"]


class ExpenseCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    requires_receipt: bool = True
    max_amount: Optional[float] = Field(None, gt=0)
    is_active: bool = True


class ExpenseCategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    requires_receipt: Optional[bool] = None
    max_amount: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None


class ExpenseCategory(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    requires_receipt: bool
    max_amount: Optional[float] = None
    is_active: bool

    class Config:
        from_attributes = True


class ExpenseItemCreate(BaseModel):
    category_id: int
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    expense_date: date
    receipt_url: Optional[str] = None
    has_receipt: bool = False
    notes: Optional[str] = None


class ExpenseItemUpdate(BaseModel):
    category_id: Optional[int] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    expense_date: Optional[date] = None
    receipt_url: Optional[str] = None
    has_receipt: Optional[bool] = None
    notes: Optional[str] = None


class ExpenseItem(BaseModel):
    id: int
    claim_id: int
    category_id: int
    category_name: Optional[str] = None
    description: str
    amount: float
    expense_date: date
    receipt_url: Optional[str] = None
    has_receipt: bool
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class ExpenseClaimCreate(BaseModel):
    employee_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    expense_date: date
    currency: str = "EUR"
    notes: Optional[str] = None
    attachments: Optional[List[str]] = None
    items: List[ExpenseItemCreate] = []


class ExpenseClaimUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    expense_date: Optional[date] = None
    currency: Optional[str] = None
    notes: Optional[str] = None
    attachments: Optional[List[str]] = None


class ExpenseClaimSummary(BaseModel):
    id: int
    claim_number: str
    employee_id: int
    employee_name: Optional[str] = None
    title: str
    expense_date: date
    total_amount: float
    currency: str
    status: str
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpenseClaim(ExpenseClaimSummary):
    description: Optional[str] = None
    notes: Optional[str] = None
    attachments: Optional[List[str]] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_reference: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[ExpenseItem] = []


class ClaimApprove(BaseModel):
    approval_notes: Optional[str] = None


class ClaimReject(BaseModel):
    rejection_reason: str = Field(..., min_length=1)


class ClaimPay(BaseModel):
    payment_reference: Optional[str] = None


class ExpenseStatistics(BaseModel):
    totalClaims: int
    totalAmount: float
    pendingAmount: float
    approvedAmount: float
    paidAmount: float
    averageAmount: float
    byStatus: Dict[str, int]
    byCategory: List[Dict[str, Any]]
    byEmployee: List[Dict[str, Any]]
    byMonth: List[Dict[str, Any]]


# =============================================================================
# CONTENT
# =============================================================================

ContentType = Literal[
    "article", "news", "banner", "tutorial", "documentation", "faq",
    "announcement", "policy", "guide", "changelog", "custom"
]
ContentStatus = Literal["draft", "pending_review", "approved", "published", "scheduled", "archived", "rejected"]
ContentVisibility = Literal["public", "internal", "clients", "private"]


class ContentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    type: ContentType = "article"
    status: ContentStatus = "draft"
    visibility: ContentVisibility = "public"
    featured_image: Optional[str] = None
    published_at: Optional[datetime] = None
    allow_comments: bool = True
    is_featured: bool = False
    language: str = "pt"
    parent_id: Optional[int] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    category_ids: List[int] = []
    tags: List[str] = []
    related_content_ids: List[int] = []


class ContentUpdate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    type: Optional[ContentType] = None
    status: Optional[ContentStatus] = None
    visibility: Optional[ContentVisibility] = None
    featured_image: Optional[str] = None
    published_at: Optional[datetime] = None
    allow_comments: Optional[bool] = None
    is_featured: Optional[bool] = None
    language: Optional[str] = None
    parent_id: Optional[int] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    category_ids: Optional[List[int]] = None
    tags: Optional[List[str]] = None
    related_content_ids: Optional[List[int]] = None
    change_summary: Optional[str] = None


class ContentCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int = 0
    is_active: bool = True


class ContentCategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class ContentCategory(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int
    is_active: bool

    class Config:
        from_attributes = True


class ContentCategoryNode(ContentCategory):
    children: List["ContentCategoryNode"] = []


ContentCategoryNode.model_rebuild()


class ContentTagCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: Optional[str] = None


class ContentTagUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None


class ContentTag(BaseModel):
    id: int
    name: str
    slug: str
    usage_count: Optional[int] = None

    class Config:
        from_attributes = True


class ContentSummary(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    type: str
    status: str
    visibility: str
    featured_image: Optional[str] = None
    author_id: Optional[int] = None
    published_at: Optional[datetime] = None
    is_featured: bool
    language: str
    version: int
    view_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContentRelated(BaseModel):
    id: int
    title: str
    slug: str

    class Config:
        from_attributes = True


class ContentDetail(ContentSummary):
    content: Optional[str] = None
    allow_comments: bool
    parent_id: Optional[int] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    categories: List[ContentCategory] = []
    tags: List[ContentTag] = []
    related: List[ContentRelated] = []


class ContentVersion(BaseModel):
    id: int
    content_id: int
    version: int
    title: str
    content: Optional[str] = None
    excerpt: Optional[str] = None
    change_summary: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContentAnalyticsOverview(BaseModel):
    totalContent: int
    published: int
    drafts: int
    totalViews: int
    byType: Dict[str, int]
    byStatus: Dict[str, int]


# =============================================================================
# CALENDAR
# =============================================================================

EventType = Literal["meeting", "reminder", "deadline", "personal", "training", "other"]
EventVisibility = Literal["private", "department", "company", "public"]
EventStatus = Literal["scheduled", "completed", "cancelled"]
ResponseStatus = Literal["pending", "accepted", "declined", "tentative"]


class ParticipantCreate(BaseModel):
    participant_type: Literal["user", "employee", "department", "external"] = "user"
    participant_id: Optional[int] = None
    external_email: Optional[EmailStr] = None
    external_name: Optional[str] = None
    is_required: bool = True

    @model_validator(mode='after')
    def check_reference(self):
        if self.participant_type == "external":
            if not self.external_email:
                raise ValueError("external participants need an external_email")
        elif self.participant_id is None:
            raise ValueError("participant_id is required")
        return self


class Participant(BaseModel):
    id: int
    participant_type: str
    participant_id: Optional[int] = None
    external_email: Optional[str] = None
    external_name: Optional[str] = None
    response_status: str
    is_organizer: bool
    is_required: bool
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CalendarEventCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    event_type: EventType = "meeting"
    visibility: EventVisibility = "private"
    location: Optional[str] = None
    online_meeting_url: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_all_day: bool = False
    color: Optional[str] = None
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    reminder_minutes: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    participants: List[ParticipantCreate] = []

    @model_validator(mode='after')
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CalendarEventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    event_type: Optional[EventType] = None
    visibility: Optional[EventVisibility] = None
    location: Optional[str] = None
    online_meeting_url: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_all_day: Optional[bool] = None
    color: Optional[str] = None
    status: Optional[EventStatus] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    reminder_minutes: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None
    participants: Optional[List[ParticipantCreate]] = None


class CalendarEvent(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    event_type: str
    visibility: str
    location: Optional[str] = None
    online_meeting_url: Optional[str] = None
    start_date: datetime
    end_date: datetime
    is_all_day: bool
    color: Optional[str] = None
    status: str
    is_recurring: bool
    recurrence_rule: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    reminder_minutes: Optional[int] = None
    notes: Optional[str] = None
    created_by: int
    created_at: Optional[datetime] = None
    participants: List[Participant] = []

    class Config:
        from_attributes = True


class EventResponse(BaseModel):
    response_status: Literal["accepted", "declined", "tentative"]


# =============================================================================
# ONBOARDING / PERFORMANCE / SHIFTS
# =============================================================================

class OnboardingCreate(BaseModel):
    employee_id: int
    start_date: date
    notes: Optional[str] = None


class Onboarding(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    start_date: date
    status: str
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OffboardingCreate(BaseModel):
    employee_id: int
    termination_date: date
    termination_type: Literal["resignation", "dismissal", "retirement", "end_of_contract", "other"]
    notes: Optional[str] = None


class Offboarding(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    termination_date: date
    termination_type: str
    status: str
    notes: Optional[str] = None
    initiated_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewCreate(BaseModel):
    employee_id: int
    reviewer_id: Optional[int] = None
    review_period_start: date
    review_period_end: date
    review_type: Literal["annual", "quarterly", "probation", "project"]
    overall_rating: Optional[float] = Field(None, ge=0, le=5)
    comments: Optional[str] = None

    @model_validator(mode='after')
    def check_period(self):
        if self.review_period_end < self.review_period_start:
            raise ValueError("review_period_end must not be before review_period_start")
        return self


class Review(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    reviewer_id: Optional[int] = None
    review_period_start: date
    review_period_end: date
    review_type: str
    status: str
    overall_rating: Optional[float] = None
    comments: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GoalCreate(BaseModel):
    employee_id: int
    goal_type: Literal["individual", "team", "company"] = "individual"
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_date: date
    target_date: date

    @model_validator(mode='after')
    def check_dates(self):
        if self.target_date < self.start_date:
            raise ValueError("target_date must not be before start_date")
        return self


class Goal(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    set_by: Optional[int] = None
    goal_type: str
    title: str
    description: Optional[str] = None
    start_date: date
    target_date: date
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


ShiftStatus = Literal["scheduled", "confirmed", "completed", "cancelled", "no_show"]


class ShiftCreate(BaseModel):
    employee_id: int
    shift_template_id: Optional[int] = None
    shift_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    notes: Optional[str] = None


class ShiftUpdate(BaseModel):
    shift_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    status: Optional[ShiftStatus] = None
    notes: Optional[str] = None


class Shift(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    shift_template_id: Optional[int] = None
    shift_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    status: str
    notes: Optional[str] = None
    assigned_by: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
