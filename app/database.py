import logging
import threading
from typing import Dict

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from app.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    """Create an engine, with the SQLite options needed to share it across request threads"""
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    new_engine = create_engine(url, **kwargs)

    if new_engine.dialect.name == "postgresql":
        # Ensure search_path is set to public schema for PostgreSQL
        @event.listens_for(new_engine, "connect")
        def set_search_path(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("SET search_path TO public")
            cursor.close()

    return new_engine


engine = build_engine(settings.database_connection_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Main database: tenants, users, roles and permissions
Base = declarative_base()

# Tenant databases: every business table lives here
TenantBase = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class TenantConnectionResolver:
    """
    Hands out sessions bound to a tenant's own database.

    One engine (and therefore one connection pool) is kept per tenant id and
    reused across requests. The tenant schema is created the first time an
    engine is built.
    """

    def __init__(self, url_template: str):
        self.url_template = url_template
        self._factories: Dict[int, sessionmaker] = {}
        self._engines: Dict[int, Engine] = {}
        self._lock = threading.Lock()

    def url_for(self, tenant) -> str:
        if tenant.database_url:
            return tenant.database_url
        return self.url_template.format(slug=tenant.slug, id=tenant.id)

    def session_factory(self, tenant) -> sessionmaker:
        factory = self._factories.get(tenant.id)
        if factory is not None:
            return factory

        with self._lock:
            factory = self._factories.get(tenant.id)
            if factory is None:
                # Imported here to avoid a circular import; also registers the tenant models
                from app.utils.tenant_seed import seed_tenant_defaults

                tenant_engine = build_engine(self.url_for(tenant))
                TenantBase.metadata.create_all(bind=tenant_engine)
                factory = sessionmaker(autocommit=False, autoflush=False, bind=tenant_engine)

                seed_session = factory()
                try:
                    seed_tenant_defaults(seed_session)
                    seed_session.commit()
                finally:
                    seed_session.close()

                self._engines[tenant.id] = tenant_engine
                self._factories[tenant.id] = factory
                logger.info(f"Tenant database ready for tenant {tenant.id} ({tenant.slug})")
        return factory

    def get_session(self, tenant) -> Session:
        return self.session_factory(tenant)()

    def dispose(self, tenant_id: int):
        with self._lock:
            tenant_engine = self._engines.pop(tenant_id, None)
            self._factories.pop(tenant_id, None)
        if tenant_engine is not None:
            tenant_engine.dispose()
            logger.info(f"Tenant connection pool closed for tenant {tenant_id}")

    def dispose_all(self):
        for tenant_id in list(self._engines.keys()):
            self.dispose(tenant_id)


tenant_resolver = TenantConnectionResolver(settings.tenant_database_url_template)
