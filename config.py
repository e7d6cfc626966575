import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Settings:
    database_url: str
    database_name: str
    jwt_secret: str
    jwt_algo: str
    token_days: int
    tax_rate: Decimal
    port: int
    log_level: str
    db_timeout_ms: int


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
        database_name=os.getenv("DATABASE_NAME", "storefront"),
        jwt_secret=os.getenv("JWT_SECRET", "devsecret"),
        jwt_algo="HS256",
        token_days=int(os.getenv("TOKEN_DAYS", 7)),
        tax_rate=Decimal(os.getenv("TAX_RATE", "0.08")),
        port=int(os.getenv("PORT", 8000)),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        db_timeout_ms=int(os.getenv("DATABASE_TIMEOUT_MS", 5000)),
    )


settings = load_settings()
