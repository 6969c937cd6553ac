import os
from decimal import Decimal


def _env(name: str, default: str) -> str:
    return os.getenv(f"TUTORBRIDGE_{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(f"TUTORBRIDGE_{name}")
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self):
        self.app_name = "TutorBridge"
        self.api_version = "1.0.0"
        self.environment = _env("ENVIRONMENT", "development")
        self.secret_key = _env("SECRET_KEY", "CHANGE_ME")
        self.SECRET_KEY = self.secret_key
        self.access_token_expire_minutes = int(_env("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
        self.ACCESS_TOKEN_EXPIRE_MINUTES = self.access_token_expire_minutes
        self.database_url = _env("DATABASE_URL", "sqlite:///./tutorbridge.db")
        self.log_level = _env("LOG_LEVEL", "INFO")

        # Currency service; an empty URL means the configured rate is used as-is.
        self.exchange_rate_url = _env("EXCHANGE_RATE_URL", "")
        self.default_exchange_rate = Decimal(_env("DEFAULT_EXCHANGE_RATE", "1500"))
        self.exchange_rate_timeout_seconds = float(_env("EXCHANGE_RATE_TIMEOUT_SECONDS", "5"))

        self.allow_zero_rate_fallback = _env_bool("ALLOW_ZERO_RATE_FALLBACK", False)

        self.recommendation_threshold = int(_env("RECOMMENDATION_THRESHOLD", "70"))
        self.recommendation_limit = int(_env("RECOMMENDATION_LIMIT", "10"))

        self.modification_expiry_days_reschedule = int(_env("MODIFICATION_EXPIRY_DAYS_RESCHEDULE", "3"))
        self.modification_expiry_days_rebook = int(_env("MODIFICATION_EXPIRY_DAYS_REBOOK", "5"))


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
