from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - DATABASE_URL (defaults to a local SQLite file; Postgres in production)
      - SUPABASE_URL / SUPABASE_KEY (anon key)
      - SUPABASE_SERVICE_ROLE_KEY (only used for Storage cleanup of catalog images)
      - ADMIN_EMAILS (comma separated; these users get role="admin" on first login)
    """

    PROJECT_NAME: str = "Ballerz Storefront API"
    API_V1_STR: str = "/api/v1"

    # Database / Supabase config
    DATABASE_URL: str = "sqlite:///./storefront.db"
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Service role key bypasses RLS (backend only)
    SUPABASE_SERVICE_ROLE_KEY: str | None = None

    ADMIN_EMAILS: str = ""

    # Guest cart cookie
    GUEST_CART_COOKIE: str = "guest_cart"
    GUEST_CART_MAX_AGE_DAYS: int = 30

    # Cart merge policy. "S" is the historical fallback for cart rows and
    # differs from the catalog display default (CATALOG_DEFAULT_SIZE).
    CART_DEFAULT_SIZE: str = "S"
    CATALOG_DEFAULT_SIZE: str = "M"
    CART_SAVE_MAX_RETRIES: int = 3

    # Invoice branding
    INVOICE_TITLE: str = "Ballerz Invoice"
    INVOICE_FOOTER: str = "Thank you for shopping with Ballerz."
    CURRENCY_LABEL: str = "Rs."

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def admin_emails(self) -> set[str]:
        return {
            e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()
        }


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
