from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Package quantity bounds per selected product
    MIN_QUANTITY: int = 1
    MAX_QUANTITY: int = 5

    # Package-mode fallback for options the upgrade table can't price
    FALLBACK_SURCHARGE_RATIO: float = 0.08
    FALLBACK_SURCHARGE_FLOOR: float = 300.0

    # Unmade multi-option material choices block pricing/submit when True
    REQUIRE_MATERIAL_SELECTION: bool = True
    PREFILL_BASE_MATERIALS: bool = True

    DEFAULT_PAYMENT_RATIO: int = 100

    # Catalog service: optional, plans can also be loaded from JSON files
    CATALOG_BASE_URL: str = ""
    CATALOG_TIMEOUT_SECONDS: int = 30

    MATERIAL_PLACEHOLDER_IMAGE: str = "/placeholder.svg"
    ORDER_NO_PREFIX: str = "PKG"

    class Config:
        env_file = ".env"


settings = Settings()
