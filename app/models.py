import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey, Date, Time, Numeric, Table, UniqueConstraint, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, TenantBase


# =============================================================================
# MAIN DATABASE
# =============================================================================

class Tenant(Base):
    """An isolated customer; all of its business data lives in its own database"""
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    database_url = Column(String, nullable=True)  # Falls back to the configured URL template
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    users = relationship("User", back_populates="tenant")


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String, nullable=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)  # NULL for built-in roles
    created_at = Column(DateTime, default=func.now())

    role_permissions = relationship("RolePermission", back_populates="role", cascade="all, delete-orphan")
    users = relationship("User", back_populates="role")


class Permission(Base):
    __tablename__ = "permissions"
    __table_args__ = (UniqueConstraint('module', 'action', name='uq_permission_module_action'),)

    id = Column(Integer, primary_key=True, index=True)
    module = Column(String, nullable=False, index=True)  # quotes, orders, expenses...
    action = Column(String, nullable=False)  # view, create, accept...
    description = Column(String, nullable=True)

    @property
    def code(self) -> str:
        return f"{self.module}.{self.action}"


class RolePermission(Base):
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),)

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)

    role = relationship("Role", back_populates="role_permissions")
    permission = relationship("Permission")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String, nullable=True)
    hashed_password = Column(String)
    is_active = Column(Boolean, default=True)

    # Multi-tenant fields
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True)

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship("Tenant", back_populates="users")
    role = relationship("Role", back_populates="users")


# =============================================================================
# TENANT DATABASE
# =============================================================================
# User references (created_by, approved_by_id...) point at users in the main
# database and are therefore plain integers, not foreign keys.

class OwnerType(str, enum.Enum):
    """Kinds of records that can own contacts, addresses and documents"""
    COMPANY = "company"
    EMPLOYEE = "employee"
    SUPPLIER = "supplier"


class SoftDeleteMixin:
    deleted_at = Column(DateTime, nullable=True)


class DocumentSequence(TenantBase):
    """Per-year counters backing human-readable document numbers"""
    __tablename__ = "document_sequences"
    __table_args__ = (UniqueConstraint('name', 'year', name='uq_document_sequence_name_year'),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)  # quote, sales_order, return_order, expense_claim
    year = Column(Integer, nullable=False)
    last_value = Column(Integer, nullable=False, default=0)


# -----------------------------------------------------------------------------
# Polymorphic sub-records
# -----------------------------------------------------------------------------

class Contact(SoftDeleteMixin, TenantBase):
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String, nullable=False, index=True)  # company, employee, supplier
    entity_id = Column(Integer, nullable=False, index=True)
    contact_type = Column(String, nullable=False)  # email, phone, mobile, fax, website, other
    contact_value = Column(String, nullable=False)
    is_primary = Column(Boolean, default=False)
    is_verified = Column(Boolean, default=False)
    label = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class Address(SoftDeleteMixin, TenantBase):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String, nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    address_type = Column(String, nullable=False, default="other")  # billing, shipping, headquarters, home, other
    is_primary = Column(Boolean, default=False)
    label = Column(String, nullable=True)
    street_line1 = Column(String, nullable=False)
    street_line2 = Column(String, nullable=True)
    postal_code = Column(String, nullable=True)
    city = Column(String, nullable=True)
    district = Column(String, nullable=True)
    state = Column(String, nullable=True)
    country = Column(String, default="PT")
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class EntityDocument(SoftDeleteMixin, TenantBase):
    __tablename__ = "entity_documents"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String, nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)
    document_type = Column(String, nullable=False)  # id_card, contract, certificate...
    document_number = Column(String, nullable=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    file_path = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String, nullable=True)
    issue_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    is_confidential = Column(Boolean, default=False)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# -----------------------------------------------------------------------------
# Companies
# -----------------------------------------------------------------------------

class Company(SoftDeleteMixin, TenantBase):
    """Client, supplier or partner company"""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    trade_name = Column(String, nullable=True)
    legal_name = Column(String, nullable=True)
    tax_id = Column(String, nullable=True, index=True)
    logo_url = Column(String, nullable=True)
    color = Column(String, nullable=True)
    company_type = Column(String, default="client")  # client, supplier, partner, internal
    legal_nature = Column(String, nullable=True)
    share_capital = Column(Numeric(14, 2), nullable=True)
    registration_number = Column(String, nullable=True)
    incorporation_date = Column(Date, nullable=True)
    segment = Column(String, nullable=True)
    industry_sector = Column(String, nullable=True)
    cae_code = Column(String, nullable=True)
    client_number = Column(String, nullable=True)
    supplier_number = Column(String, nullable=True)
    payment_terms = Column(String, nullable=True)
    preferred_payment_method = Column(String, nullable=True)
    credit_limit = Column(Numeric(14, 2), nullable=True)
    commercial_discount = Column(Numeric(5, 2), nullable=True)
    rating = Column(Integer, nullable=True)
    status = Column(String, default="active")  # active, inactive, pending, suspended
    notes = Column(Text, nullable=True)
    external_ref = Column(String, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# -----------------------------------------------------------------------------
# Employees
# -----------------------------------------------------------------------------

class EmployeeType(TenantBase):
    __tablename__ = "employee_types"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=func.now())


class Employee(SoftDeleteMixin, TenantBase):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String, nullable=True, index=True)
    employee_type_id = Column(Integer, ForeignKey("employee_types.id"), nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    department_id = Column(Integer, nullable=True)
    manager_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    full_name = Column(String, nullable=False, index=True)
    short_name = Column(String, nullable=True)
    job_title = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    birth_date = Column(Date, nullable=True)
    birthplace = Column(String, nullable=True)
    nationality = Column(String, nullable=True)
    marital_status = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    hire_date = Column(Date, nullable=True)
    employment_status = Column(String, default="active")  # active, on_leave, terminated
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    employee_type = relationship("EmployeeType")
    company = relationship("Company")
    manager = relationship("Employee", remote_side=[id])


class EmployeeBenefit(SoftDeleteMixin, TenantBase):
    __tablename__ = "employee_benefits"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    benefit_type = Column(String, nullable=False)  # health_insurance, meal_allowance, vehicle...
    provider = Column(String, nullable=True)
    policy_number = Column(String, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    monthly_cost = Column(Numeric(12, 2), nullable=True)
    employee_contribution = Column(Numeric(12, 2), nullable=True)
    company_contribution = Column(Numeric(12, 2), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


# -----------------------------------------------------------------------------
# Products
# -----------------------------------------------------------------------------

class Product(SoftDeleteMixin, TenantBase):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, index=True)
    barcode = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    type = Column(String, default="product")  # product, service
    category = Column(String, nullable=True, index=True)
    subcategory = Column(String, nullable=True)
    unit = Column(String, default="un")

    # Pricing
    cost_price = Column(Numeric(12, 2), default=0)
    sale_price = Column(Numeric(12, 2), default=0)
    promotional_price = Column(Numeric(12, 2), nullable=True)
    promotion_start_date = Column(Date, nullable=True)
    promotion_end_date = Column(Date, nullable=True)
    profit_margin = Column(Numeric(5, 2), nullable=True)
    vat_rate = Column(Numeric(5, 2), default=23)
    vat_code = Column(String, nullable=True)

    # Stock
    current_stock = Column(Integer, default=0)
    min_stock = Column(Integer, default=0)
    max_stock = Column(Integer, nullable=True)
    reorder_point = Column(Integer, nullable=True)
    reorder_quantity = Column(Integer, nullable=True)

    weight = Column(Numeric(10, 3), nullable=True)
    dimensions = Column(String, nullable=True)
    supplier_reference = Column(String, nullable=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    lead_time_days = Column(Integer, nullable=True)
    warranty_months = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # Flags
    is_active = Column(Boolean, default=True)
    is_featured = Column(Boolean, default=False)
    visible_in_catalog = Column(Boolean, default=True)
    allow_backorders = Column(Boolean, default=False)
    track_stock = Column(Boolean, default=True)
    is_taxable = Column(Boolean, default=True)
    status = Column(String, default="active")  # active, inactive, discontinued, out_of_stock

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier")
    stock_movements = relationship("StockMovement", back_populates="product", order_by="StockMovement.id.desc()")


class StockMovement(TenantBase):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    movement_type = Column(String, nullable=False)  # purchase, sale, adjustment, return, transfer, damaged, lost, initial
    quantity = Column(Integer, nullable=False)  # Signed
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(12, 2), nullable=True)
    reference = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())

    product = relationship("Product", back_populates="stock_movements")


# -----------------------------------------------------------------------------
# Suppliers
# -----------------------------------------------------------------------------

class Supplier(SoftDeleteMixin, TenantBase):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    name = Column(String, nullable=False, index=True)
    tax_id = Column(String, nullable=True)
    supplier_type = Column(String, default="distributor")  # manufacturer, distributor, wholesaler, service_provider
    payment_terms = Column(String, nullable=True)
    rating = Column(Integer, nullable=True)
    status = Column(String, default="active")  # active, inactive, blocked, pending
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    company = relationship("Company")


# -----------------------------------------------------------------------------
# Quotes
# -----------------------------------------------------------------------------

class Quote(SoftDeleteMixin, TenantBase):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    quote_number = Column(String, unique=True, nullable=False, index=True)  # QUO-YYYY-NNNNNN
    client_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)  # Issuing company
    assigned_to = Column(Integer, nullable=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # draft, sent, viewed, accepted, rejected, expired, converted
    status = Column(String, default="draft", index=True)
    quote_date = Column(Date, nullable=False)
    valid_until = Column(Date, nullable=False)

    # Totals (always recomputed from the items)
    subtotal = Column(Numeric(14, 2), default=0)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_amount = Column(Numeric(14, 2), default=0)
    tax_amount = Column(Numeric(14, 2), default=0)
    total_amount = Column(Numeric(14, 2), default=0)
    currency = Column(String, default="EUR")

    payment_terms = Column(String, nullable=True)
    delivery_terms = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    terms_conditions = Column(Text, nullable=True)

    # Lifecycle
    sent_at = Column(DateTime, nullable=True)
    viewed_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by_id = Column(Integer, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejected_reason = Column(Text, nullable=True)
    converted_at = Column(DateTime, nullable=True)
    sales_order_id = Column(Integer, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Company", foreign_keys=[client_id])
    items = relationship("QuoteItem", back_populates="quote", cascade="all, delete-orphan", order_by="QuoteItem.line_number")


class QuoteItem(TenantBase):
    __tablename__ = "quote_items"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    description = Column(String, nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_amount = Column(Numeric(14, 2), default=0)
    tax_rate = Column(Numeric(5, 2), nullable=True)
    tax_amount = Column(Numeric(14, 2), default=0)
    line_total = Column(Numeric(14, 2), default=0)
    notes = Column(Text, nullable=True)

    quote = relationship("Quote", back_populates="items")


# -----------------------------------------------------------------------------
# Sales Orders
# -----------------------------------------------------------------------------

class SalesOrder(SoftDeleteMixin, TenantBase):
    __tablename__ = "sales_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, nullable=False, index=True)  # SO-YYYY-NNNNNN / RET-YYYY-NNNNNN
    quote_id = Column(Integer, ForeignKey("quotes.id"), nullable=True)
    client_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    assigned_to = Column(Integer, nullable=True)
    original_order_id = Column(Integer, ForeignKey("sales_orders.id"), nullable=True)  # Set on return orders

    order_type = Column(String, default="standard")  # standard, express, custom, wholesale, sample
    priority = Column(String, default="normal")  # low, normal, high, urgent
    # draft, pending, confirmed, processing, partially_shipped, shipped,
    # partially_delivered, delivered, completed, cancelled, returned
    status = Column(String, default="draft", index=True)
    payment_status = Column(String, default="unpaid")  # unpaid, partially_paid, paid, refunded, overdue

    order_date = Column(Date, nullable=False)
    expected_delivery_date = Column(Date, nullable=True)

    # Shipping
    shipping_method = Column(String, nullable=True)  # standard, express, overnight, pickup, freight
    shipping_address = Column(Text, nullable=True)
    billing_address = Column(Text, nullable=True)
    carrier = Column(String, nullable=True)
    tracking_number = Column(String, nullable=True)

    # Totals (always recomputed from the items)
    subtotal = Column(Numeric(14, 2), default=0)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_amount = Column(Numeric(14, 2), default=0)
    tax_amount = Column(Numeric(14, 2), default=0)
    shipping_cost = Column(Numeric(14, 2), default=0)
    total_amount = Column(Numeric(14, 2), default=0)
    total_paid = Column(Numeric(14, 2), default=0)
    currency = Column(String, default="EUR")

    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    # Lifecycle
    confirmed_at = Column(DateTime, nullable=True)
    confirmed_by = Column(Integer, nullable=True)
    processing_at = Column(DateTime, nullable=True)
    shipped_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(Integer, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    returned_at = Column(DateTime, nullable=True)
    return_reason = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship("Company", foreign_keys=[client_id])
    quote = relationship("Quote", foreign_keys=[quote_id])
    items = relationship("SalesOrderItem", back_populates="sales_order", cascade="all, delete-orphan", order_by="SalesOrderItem.line_number")
    payments = relationship("SalesOrderPayment", back_populates="sales_order", cascade="all, delete-orphan", order_by="SalesOrderPayment.id")


class SalesOrderItem(TenantBase):
    __tablename__ = "sales_order_items"

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    description = Column(String, nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    quantity_shipped = Column(Numeric(12, 3), default=0)
    quantity_delivered = Column(Numeric(12, 3), default=0)
    unit_price = Column(Numeric(14, 2), nullable=False)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_amount = Column(Numeric(14, 2), default=0)
    tax_rate = Column(Numeric(5, 2), nullable=True)
    tax_amount = Column(Numeric(14, 2), default=0)
    line_total = Column(Numeric(14, 2), default=0)
    notes = Column(Text, nullable=True)

    sales_order = relationship("SalesOrder", back_populates="items")


class SalesOrderPayment(TenantBase):
    __tablename__ = "sales_order_payments"

    id = Column(Integer, primary_key=True, index=True)
    sales_order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String, nullable=True)  # transfer, card, cash, check...
    reference = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())

    sales_order = relationship("SalesOrder", back_populates="payments")


# -----------------------------------------------------------------------------
# Expenses
# -----------------------------------------------------------------------------

class ExpenseCategory(SoftDeleteMixin, TenantBase):
    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    color = Column(String, nullable=True)
    requires_receipt = Column(Boolean, default=True)
    max_amount = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class ExpenseClaim(SoftDeleteMixin, TenantBase):
    __tablename__ = "expense_claims"

    id = Column(Integer, primary_key=True, index=True)
    claim_number = Column(String, unique=True, nullable=False, index=True)  # EXP-YYYY-NNNNNN
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    expense_date = Column(Date, nullable=False)
    total_amount = Column(Numeric(12, 2), default=0)  # Sum of item amounts
    currency = Column(String, default="EUR")
    status = Column(String, default="draft", index=True)  # draft, submitted, approved, rejected, paid, cancelled
    notes = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=True)

    # Workflow
    submitted_at = Column(DateTime, nullable=True)
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_by = Column(Integer, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    payment_reference = Column(String, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    employee = relationship("Employee")
    items = relationship("ExpenseItem", back_populates="claim", cascade="all, delete-orphan", order_by="ExpenseItem.id")


class ExpenseItem(TenantBase):
    __tablename__ = "expense_items"

    id = Column(Integer, primary_key=True, index=True)
    claim_id = Column(Integer, ForeignKey("expense_claims.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("expense_categories.id"), nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, nullable=False)
    receipt_url = Column(String, nullable=True)
    has_receipt = Column(Boolean, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    claim = relationship("ExpenseClaim", back_populates="items")
    category = relationship("ExpenseCategory")


# -----------------------------------------------------------------------------
# Content (CMS)
# -----------------------------------------------------------------------------

content_category_links = Table(
    'content_category_links',
    TenantBase.metadata,
    Column('content_id', Integer, ForeignKey('contents.id', ondelete='CASCADE'), primary_key=True),
    Column('category_id', Integer, ForeignKey('content_categories.id', ondelete='CASCADE'), primary_key=True)
)

content_tag_links = Table(
    'content_tag_links',
    TenantBase.metadata,
    Column('content_id', Integer, ForeignKey('contents.id', ondelete='CASCADE'), primary_key=True),
    Column('tag_id', Integer, ForeignKey('content_tags.id', ondelete='CASCADE'), primary_key=True)
)

content_related_links = Table(
    'content_related_links',
    TenantBase.metadata,
    Column('content_id', Integer, ForeignKey('contents.id', ondelete='CASCADE'), primary_key=True),
    Column('related_content_id', Integer, ForeignKey('contents.id', ondelete='CASCADE'), primary_key=True)
)


class Content(SoftDeleteMixin, TenantBase):
    __tablename__ = "contents"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, index=True)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    # article, news, banner, tutorial, documentation, faq, announcement, policy, guide, changelog, custom
    type = Column(String, default="article")
    # draft, pending_review, approved, published, scheduled, archived, rejected
    status = Column(String, default="draft", index=True)
    visibility = Column(String, default="public")  # public, internal, clients, private
    featured_image = Column(String, nullable=True)
    author_id = Column(Integer, nullable=True)
    published_at = Column(DateTime, nullable=True)
    allow_comments = Column(Boolean, default=True)
    is_featured = Column(Boolean, default=False)
    language = Column(String, default="pt")
    parent_id = Column(Integer, ForeignKey("contents.id"), nullable=True)
    version = Column(Integer, default=1)
    view_count = Column(Integer, default=0)

    # SEO
    meta_title = Column(String, nullable=True)
    meta_description = Column(Text, nullable=True)
    meta_keywords = Column(String, nullable=True)
    custom_fields = Column(JSON, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    categories = relationship("ContentCategory", secondary=content_category_links)
    tags = relationship("ContentTag", secondary=content_tag_links, back_populates="contents")
    related = relationship(
        "Content",
        secondary=content_related_links,
        primaryjoin=id == content_related_links.c.content_id,
        secondaryjoin=id == content_related_links.c.related_content_id,
    )
    versions = relationship("ContentVersion", back_populates="content_item", cascade="all, delete-orphan", order_by="ContentVersion.version.desc()")


class ContentVersion(TenantBase):
    __tablename__ = "content_versions"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=True)
    change_summary = Column(String, nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())

    content_item = relationship("Content", back_populates="versions")


class ContentCategory(TenantBase):
    __tablename__ = "content_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    parent_id = Column(Integer, ForeignKey("content_categories.id"), nullable=True)
    sort_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class ContentTag(TenantBase):
    __tablename__ = "content_tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=func.now())

    contents = relationship("Content", secondary=content_tag_links, back_populates="tags")


class ContentView(TenantBase):
    __tablename__ = "content_views"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(Integer, ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    referer = Column(String, nullable=True)
    viewed_at = Column(DateTime, default=func.now())


# -----------------------------------------------------------------------------
# Calendar
# -----------------------------------------------------------------------------

class CalendarEvent(SoftDeleteMixin, TenantBase):
    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    event_type = Column(String, default="meeting")  # meeting, reminder, deadline, personal, training, other
    visibility = Column(String, default="private")  # private, department, company, public
    location = Column(String, nullable=True)
    online_meeting_url = Column(String, nullable=True)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    is_all_day = Column(Boolean, default=False)
    color = Column(String, nullable=True)
    status = Column(String, default="scheduled")  # scheduled, completed, cancelled
    is_recurring = Column(Boolean, default=False)
    recurrence_rule = Column(String, nullable=True)
    recurrence_end_date = Column(Date, nullable=True)
    reminder_minutes = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    participants = relationship("CalendarParticipant", back_populates="event", cascade="all, delete-orphan", order_by="CalendarParticipant.id")


class CalendarParticipant(TenantBase):
    __tablename__ = "calendar_participants"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("calendar_events.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_type = Column(String, default="user")  # user, employee, department, external
    participant_id = Column(Integer, nullable=True)
    external_email = Column(String, nullable=True)
    external_name = Column(String, nullable=True)
    response_status = Column(String, default="pending")  # pending, accepted, declined, tentative
    is_organizer = Column(Boolean, default=False)
    is_required = Column(Boolean, default=True)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now())

    event = relationship("CalendarEvent", back_populates="participants")


# -----------------------------------------------------------------------------
# HR: onboarding, performance, shifts
# -----------------------------------------------------------------------------

class OnboardingProcess(SoftDeleteMixin, TenantBase):
    __tablename__ = "onboarding_processes"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    status = Column(String, default="not_started")  # not_started, in_progress, completed
    notes = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    employee = relationship("Employee")


class OffboardingProcess(SoftDeleteMixin, TenantBase):
    __tablename__ = "offboarding_processes"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    termination_date = Column(Date, nullable=False)
    termination_type = Column(String, nullable=False)  # resignation, dismissal, retirement, end_of_contract, other
    status = Column(String, default="initiated")
    notes = Column(Text, nullable=True)
    initiated_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    employee = relationship("Employee")


class PerformanceReview(SoftDeleteMixin, TenantBase):
    __tablename__ = "performance_reviews"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    review_period_start = Column(Date, nullable=False)
    review_period_end = Column(Date, nullable=False)
    review_type = Column(String, nullable=False)  # annual, quarterly, probation, project
    status = Column(String, default="draft")
    overall_rating = Column(Numeric(3, 1), nullable=True)
    comments = Column(Text, nullable=True)
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    employee = relationship("Employee", foreign_keys=[employee_id])


class PerformanceGoal(SoftDeleteMixin, TenantBase):
    __tablename__ = "performance_goals"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    set_by = Column(Integer, nullable=True)
    goal_type = Column(String, nullable=False)  # individual, team, company
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    target_date = Column(Date, nullable=False)
    status = Column(String, default="active")
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    employee = relationship("Employee")


class EmployeeShift(SoftDeleteMixin, TenantBase):
    __tablename__ = "employee_shifts"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    shift_template_id = Column(Integer, nullable=True)
    shift_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    status = Column(String, default="scheduled")  # scheduled, confirmed, completed, cancelled, no_show
    notes = Column(Text, nullable=True)
    assigned_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    employee = relationship("Employee")
