"""Application configuration with environment-based settings."""
import os
from typing import Optional
from dotenv import load_dotenv


class Config:
    """Base configuration class following Single Responsibility Principle."""

    # Load environment variables
    load_dotenv()

    # Persistence backend ("remote" = Redis document store, "local" = JSON blob)
    PERSISTENCE_BACKEND: str = os.getenv("PERSISTENCE_BACKEND", "local")

    # Redis Configuration
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "cafeteria:")

    # Local storage
    LOCAL_STORAGE_PATH: str = os.getenv("LOCAL_STORAGE_PATH", "data/local_storage.json")
    LOCAL_STORAGE_KEY: str = os.getenv("LOCAL_STORAGE_KEY", "zwigatoo_data")
    EMAIL_LINK_MARKER_KEY: str = os.getenv("EMAIL_LINK_MARKER_KEY", "emailForSignIn")

    # Identity provider (Identity Toolkit compatible REST API)
    IDENTITY_API_KEY: Optional[str] = os.getenv("IDENTITY_API_KEY")
    IDENTITY_BASE_URL: str = os.getenv(
        "IDENTITY_BASE_URL", "https://identitytoolkit.googleapis.com/v1"
    )
    EMAIL_LINK_CONTINUE_URL: str = os.getenv(
        "EMAIL_LINK_CONTINUE_URL", "http://localhost:5173/auth"
    )
    OAUTH_REQUEST_URI: str = os.getenv("OAUTH_REQUEST_URI", "http://localhost")

    # Orders
    PRICE_TOLERANCE: float = float(os.getenv("PRICE_TOLERANCE", "0.000001"))

    # Application
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values."""
        if cls.PERSISTENCE_BACKEND.lower() not in ("remote", "local"):
            raise ValueError(
                f"PERSISTENCE_BACKEND must be 'remote' or 'local', got: {cls.PERSISTENCE_BACKEND}"
            )

        required_vars = [
            ("IDENTITY_API_KEY", cls.IDENTITY_API_KEY),
        ]
        if cls.PERSISTENCE_BACKEND.lower() == "remote":
            required_vars.append(("REDIS_URL", cls.REDIS_URL))

        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        if cls.PRICE_TOLERANCE < 0:
            raise ValueError("PRICE_TOLERANCE must be non-negative")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    PERSISTENCE_BACKEND = os.getenv("PERSISTENCE_BACKEND", "remote")


class TestingConfig(Config):
    """Testing configuration."""
    PERSISTENCE_BACKEND = "local"
    REDIS_URL = "redis://localhost:6379/15"  # Use different DB for tests
    IDENTITY_API_KEY = "test-api-key"


def get_config() -> type[Config]:
    """Factory method to get configuration based on environment."""
    env = os.getenv("CAFETERIA_ENV", "development").lower()

    config_map = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }

    return config_map.get(env, DevelopmentConfig)
