from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "EduSpher Storefront"
    DATABASE_URL: str = "sqlite:///./eduspher_storefront.db"
    LOG_LEVEL: str = "INFO"

    # Backend API
    BACKEND_ORIGIN: str = "http://localhost:3000"
    BACKEND_API_PATH: str = "/api"
    DEFAULT_STORE_ID: Optional[int] = None
    HTTP_TIMEOUT_SECONDS: Optional[float] = None  # None = transport default

    # Cookies
    SESSION_COOKIE: str = "jwt"
    VISITOR_COOKIE: str = "eduspher_visitor_id"
    STORE_ID_COOKIE: str = "skillforge_selected_store_id"
    CART_COUNT_COOKIE: str = "eduspher_cart_count"
    LOCALE_COOKIE: str = "eduspher_locale"
    CURRENCY_COOKIE: str = "eduspher_currency"

    # Local cart storage keys
    CART_STORAGE_KEY: str = "edusphere_cart"
    CART_SYNC_KEY: str = "edusphere_cart_synced"
    CART_AUTH_KEY: str = "edusphere_cart_authenticated"

    # Mock bank gateway
    MOCK_PAYMENT_SUCCESS_RATE: float = 0.8
    PAYMENT_REDIRECT_DELAY_SECONDS: int = 2

    # Locale
    DEFAULT_LANGUAGE: str = "en"
    DEFAULT_CURRENCY: str = "USD"

    @property
    def backend_api_base_url(self) -> str:
        origin = self.BACKEND_ORIGIN.strip().rstrip("/") or "http://localhost:3000"
        path = self.BACKEND_API_PATH or "/api"
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{origin}{path}"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
