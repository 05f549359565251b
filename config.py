"""
Configuration settings for the WAF Manager service.
"""
import os
from typing import List


class Settings:
    """Application settings."""

    # Application settings
    PROJECT_NAME: str = "WAF Manager"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Manage Cloudflare WAF custom rules, DNS proxying and rule templates across zones"

    # API settings
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Cloudflare settings
    CLOUDFLARE_API_BASE: str = os.getenv("CLOUDFLARE_API_BASE", "https://api.cloudflare.com/client/v4")
    PRODUCT_NAME: str = os.getenv("PRODUCT_NAME", "WAFManager Pro")
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "15"))

    # Retry settings
    RETRY_ATTEMPTS: int = int(os.getenv("RETRY_ATTEMPTS", "3"))
    RETRY_DELAY: float = float(os.getenv("RETRY_DELAY", "1.0"))
    RETRY_BACKOFF: float = float(os.getenv("RETRY_BACKOFF", "2.0"))

    # Template settings
    RULES_CACHE_TTL: float = float(os.getenv("RULES_CACHE_TTL", "300"))
    TEMPLATE_DB_PATH: str = os.getenv("TEMPLATE_DB_PATH", "waf_templates.db")

    # Security settings
    ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
        if origin.strip()
    ]


settings = Settings()
