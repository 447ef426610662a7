"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    app_name: str = "Roaster's Choice Service"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Shopify app credentials (client-credentials grant)
    shopify_shop: str = ""
    shopify_client_id: str = ""
    shopify_client_secret: str = ""
    shopify_api_version: str = "2026-01"
    shopify_http_timeout: int = 60

    # Shared secret sent by Shopify Flow in the x-rc-token header
    rc_shared_secret: str = ""

    # Catalog
    collection_handle: str = "single-origin-coffee"
    exclude_tag: str = "exclude_roasters_choice"

    # Token cache
    token_refresh_margin_seconds: int = 60

    def shop_domain(self) -> str:
        """Return the shop as a full myshopify.com domain."""
        shop = (self.shopify_shop or "").strip()
        if shop and not shop.endswith(".myshopify.com"):
            shop = f"{shop}.myshopify.com"
        return shop

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
