"""Cafeteria ordering core: session resolution, persistence and order flow."""
import logging
import sys
from typing import Optional

from cafeteria.config.settings import Config, get_config
from cafeteria.domain.interfaces.identity_provider import PopupHandler
from cafeteria.infrastructure.service_container import ServiceContainer


def create_app(config_class=None, popup_handler: Optional[PopupHandler] = None) -> ServiceContainer:
    """
    Create the service container for the configured environment.

    Args:
        config_class: Optional configuration class (for testing)
        popup_handler: Opens the OAuth consent popup for OAuth sign-in

    Returns:
        ServiceContainer with lazily built services
    """
    config = config_class or get_config()
    configure_logging(config)
    _logger = logging.getLogger(__name__)

    # Validate configuration (missing optional values only warn)
    try:
        config.validate()
    except ValueError as e:
        _logger.warning(f"Configuration validation warning: {e}")

    container = ServiceContainer(config=config, popup_handler=popup_handler)
    _logger.info(f"Cafeteria core initialized with {config.PERSISTENCE_BACKEND} persistence")
    return container


def configure_logging(config=Config) -> None:
    """Configure application logging."""
    level = logging.DEBUG if config.DEBUG else getattr(logging, config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout,
        force=True,
    )


__all__ = ["create_app", "configure_logging", "ServiceContainer"]
