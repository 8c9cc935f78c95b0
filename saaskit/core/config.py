import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    SITE_NAME: str = "SaasKit"

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Supabase Auth
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_COOKIE_NAME: Optional[str] = None  # defaults to sb-<project-ref>-auth-token
    IDENTITY_TIMEOUT_SECONDS: float = 10.0

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_API_VERSION: str = "2024-06-20"

    # Auth callback
    AUTH_ERROR_PATH: str = "/auth/auth-code-error"
    TRUST_FORWARDED_HOST: bool = True  # only meaningful behind a proxy that sets X-Forwarded-Host

    # Catalog
    CATALOG_REVALIDATE_SECONDS: int = 3600

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def is_local_env(settings_obj: Optional[Settings] = None) -> bool:
    """True when running in local development (no load balancer in front)."""
    cfg = settings_obj or settings
    return (cfg.ENV or "").lower() == "development"


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("saaskit")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "STRIPE_SECRET_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
