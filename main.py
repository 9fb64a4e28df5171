from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
import logging

from app.api import (
    auth, tenants, companies, employees, products, suppliers, quotes, sales_orders,
    expenses, content, calendar, onboarding, performance, shifts
)
from app.config import settings
from app.database import engine, SessionLocal
from app.middlewares.request_logging import RequestLoggingMiddleware
from app.models import Base
from app.utils.permission_seed import seed_permissions
from app.utils.rate_limiter import limiter, rate_limit_exceeded_handler

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


def seed_main_database():
    db = SessionLocal()
    try:
        seed_permissions(db)
    finally:
        db.close()


seed_main_database()

app = FastAPI(title="Business Management API", version="1.0.0")

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(RequestLoggingMiddleware)

# CORS middleware - must be added after all other middlewares
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(tenants.router, prefix="/api/tenants", tags=["Tenants"])
app.include_router(companies.router, prefix="/api/companies", tags=["Companies"])
app.include_router(employees.router, prefix="/api/employees", tags=["Employees"])
app.include_router(products.router, prefix="/api/products", tags=["Products"])
app.include_router(suppliers.router, prefix="/api/suppliers", tags=["Suppliers"])
app.include_router(quotes.router, prefix="/api/quotes", tags=["Quotes"])
app.include_router(sales_orders.router, prefix="/api/sales-orders", tags=["Sales Orders"])
app.include_router(expenses.router, prefix="/api/expenses", tags=["Expenses"])
app.include_router(content.router, prefix="/api/content", tags=["Content"])
app.include_router(calendar.router, prefix="/api/calendar", tags=["Calendar"])

# HR Routers
app.include_router(onboarding.router, prefix="/api/onboarding", tags=["HR - Onboarding"])
app.include_router(performance.router, prefix="/api/performance", tags=["HR - Performance"])
app.include_router(shifts.router, prefix="/api/shifts", tags=["HR - Shifts"])


@app.get("/")
async def root():
    return {"message": "Business Management API is running"}


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "environment": settings.environment}
