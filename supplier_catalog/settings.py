from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from supplier_catalog.exceptions import ConfigurationError


class Settings(BaseSettings):
    database_url: str = ""

    # SSActivewear: PromoStandards SOAP (primary) + REST v2 (fallback), same credentials for both
    ssactivewear_account_number: str = ""
    ssactivewear_api_key: str = ""
    ssactivewear_rest_base_url: str = "https://api.ssactivewear.com/V2"
    ssactivewear_product_url: str = "https://promostandards.ssactivewear.com/productdata/v2/productdataservice.svc"
    ssactivewear_inventory_url: str = "https://promostandards.ssactivewear.com/Inventory/v2/InventoryService.svc"
    ssactivewear_rate_limit_min_remaining: int = 1
    ssactivewear_rate_limit_default_wait: float = 1.1  # seconds

    # SanMar
    sanmar_promostandards_username: str = ""
    sanmar_promostandards_password: str = ""
    sanmar_account_number: str = ""  # falls back to the username
    sanmar_inventory_url: str = "https://ws.sanmar.com:8080/promostandards/InventoryServiceBindingV2final"
    sanmar_product_url: str = "https://ws.sanmar.com:8080/SanMarWebService/SanMarProductInfoServicePort"

    # SanMar catalog request shape (the service has changed field names between versions)
    sanmar_product_operation: str = "GetProducts"
    sanmar_product_request_key: str = "request"  # "__root__" = no wrapper element
    sanmar_product_page_field: str = "Page"
    sanmar_product_page_size_field: str = "PageSize"
    sanmar_product_include_inactive_field: str = "IncludeInactive"
    sanmar_product_include_discontinued_field: str = "IncludeDiscontinued"
    sanmar_product_modified_field: str = "ModifiedSince"
    sanmar_catalog_page_size: int = 100

    supplier_request_timeout: float = 30.0  # seconds

    def require(self, *names: str) -> None:
        """Raise ConfigurationError listing every named field that is empty."""
        missing = [name for name in names if not str(getattr(self, name, "") or "").strip()]
        if missing:
            env_names = ", ".join(name.upper() for name in missing)
            raise ConfigurationError(f"Missing required environment variable(s): {env_names}", missing=missing)

    def sanmar_account(self) -> str:
        return (self.sanmar_account_number or self.sanmar_promostandards_username).strip()

    @field_validator("database_url")
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        if v and not v.startswith(("postgresql", "sqlite")):
            raise ValueError("DB URL must start with 'postgresql' or 'sqlite'")
        return v

    @field_validator(
        "ssactivewear_rest_base_url",
        "ssactivewear_product_url",
        "ssactivewear_inventory_url",
        "sanmar_inventory_url",
        "sanmar_product_url",
    )
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with 'http://' or 'https://'")
        return v

    @field_validator("supplier_request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("supplier_request_timeout must be greater than 0")
        return v

    @field_validator("ssactivewear_rate_limit_default_wait")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("wait time must be 0 or greater")
        return v

    @field_validator("sanmar_catalog_page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if not 1 <= v <= 1000:
            raise ValueError("sanmar_catalog_page_size must be between 1 and 1000")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


settings = Settings()
