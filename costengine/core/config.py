"""
Configuration module for loading environment variables.
All tunables for catalog access and state building are read once at import time.
"""
import os


# Approximate number of hours in a month: 365 days x 24 hours / 12 months.
_HOURS_PER_MONTH = 365 * 24 // 12

SUPPORTED_CATALOG_BACKENDS = ("memory", "offer_files", "azure_retail", "aws_pricing")


class Config:
    """Application configuration loaded from environment variables."""

    # Normalization constant shared by every hourly -> monthly conversion
    HOURS_PER_MONTH: int = _HOURS_PER_MONTH
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")

    # Catalog Configuration
    CATALOG_BACKEND: str = os.getenv("CATALOG_BACKEND", "offer_files")
    OFFER_CACHE_DIR: str = os.getenv("OFFER_CACHE_DIR", "pricing-cache")
    PRICING_CACHE_TTL_SECONDS: int = int(os.getenv("PRICING_CACHE_TTL_SECONDS", "86400"))  # 24 hours

    # Azure Retail Prices API (public, no authentication)
    AZURE_RETAIL_PRICES_URL: str = os.getenv(
        "AZURE_RETAIL_PRICES_URL",
        "https://prices.azure.com/api/retail/prices"
    )
    AZURE_PRICING_TIMEOUT: float = float(os.getenv("AZURE_PRICING_TIMEOUT", "10"))

    # AWS Price List API is only served from a few regions
    AWS_PRICING_REGION: str = os.getenv("AWS_PRICING_REGION", "us-east-1")

    # State building
    BUILD_CONCURRENCY: int = int(os.getenv("BUILD_CONCURRENCY", "8"))
    BUILD_TIMEOUT_SECONDS: float = float(os.getenv("BUILD_TIMEOUT_SECONDS", "120"))

    @classmethod
    def validate(cls) -> None:
        """
        Validates that configuration values are usable.

        Raises:
            ValueError: If any configuration value is missing or invalid.
        """
        if cls.CATALOG_BACKEND not in SUPPORTED_CATALOG_BACKENDS:
            raise ValueError(
                f"CATALOG_BACKEND must be one of {', '.join(SUPPORTED_CATALOG_BACKENDS)} "
                f"(got: {cls.CATALOG_BACKEND})"
            )
        if cls.CATALOG_BACKEND == "offer_files" and not cls.OFFER_CACHE_DIR:
            raise ValueError("OFFER_CACHE_DIR is required for the offer_files catalog")
        if not cls.AZURE_RETAIL_PRICES_URL.startswith(("http://", "https://")):
            raise ValueError(
                f"AZURE_RETAIL_PRICES_URL must be a valid URL (got: {cls.AZURE_RETAIL_PRICES_URL})"
            )
        if cls.BUILD_CONCURRENCY < 1:
            raise ValueError("BUILD_CONCURRENCY must be at least 1")
        if cls.BUILD_TIMEOUT_SECONDS < 0:
            raise ValueError("BUILD_TIMEOUT_SECONDS must be non-negative")
        if cls.PRICING_CACHE_TTL_SECONDS < 0:
            raise ValueError("PRICING_CACHE_TTL_SECONDS must be non-negative")


config = Config()
