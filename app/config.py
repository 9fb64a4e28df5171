from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from typing import Optional, List


class Settings(BaseSettings):
    # Main database (tenants, users, roles)
    database_url: Optional[str] = None
    db_username: Optional[str] = None
    db_password: Optional[str] = None
    db_host: str = "localhost"
    db_port: str = "5432"
    db_name: Optional[str] = None

    # Tenant databases. Formatted with {slug} and {id} when a tenant has no explicit URL
    tenant_database_url_template: str = "sqlite:///./tenant_{slug}.db"

    # Authentication
    secret_key: str = "your-secret-key-here"
    algorithm: str = "HS256"
    access_token_expire_minutes: Optional[int] = 30
    bcrypt_rounds: int = 12

    # Runtime
    environment: str = "development"
    disable_permissions: bool = False
    rate_limit_enabled: bool = True
    cors_origins: str = "http://localhost:3000,http://localhost:4200"
    default_page_size: int = 20

    @field_validator('algorithm', mode='before')
    @classmethod
    def parse_algorithm(cls, v):
        if v is None or v == '':
            return "HS256"
        return v

    @field_validator('access_token_expire_minutes', mode='before')
    @classmethod
    def parse_token_expire(cls, v):
        if v is None or v == '':
            return 30
        return int(v)

    @field_validator('environment', mode='before')
    @classmethod
    def parse_environment(cls, v):
        if v is None or v == '':
            return "development"
        v = str(v).strip().lower()
        if v not in ("development", "production", "test"):
            raise ValueError("environment must be one of: development, production, test")
        return v

    @model_validator(mode='after')
    def check_permission_bypass(self):
        # The permission bypass exists for the test suite only
        if self.disable_permissions and self.environment != "test":
            raise ValueError("disable_permissions can only be enabled when environment is 'test'")
        return self

    @property
    def database_connection_url(self) -> str:
        """Build database URL from individual components or use direct URL"""
        if all([self.db_username, self.db_password, self.db_host, self.db_port, self.db_name]):
            return f"postgresql://{self.db_username}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"
        elif self.database_url:
            return self.database_url
        else:
            return "sqlite:///./app.db"  # Fallback to SQLite

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def permissions_bypassed(self) -> bool:
        return self.disable_permissions and self.environment == "test"

    class Config:
        env_file = ".env"


settings = Settings()
