"""
Centralized configuration management for backend services.

This module provides a unified interface for accessing service-specific
configuration settings. It selects the appropriate settings class based on
the service name.

The configuration system uses Pydantic Settings, which loads values from:
    1. Environment variables (highest priority)
    2. .env file in the project root
    3. Default values defined in the settings classes

Example:
    ```python
    from common.config import get_settings

    settings = get_settings("report-delivery-service")
    print(settings.SERVICE_NAME)  # "report-delivery-service"
    print(settings.PORT)  # 8004
    ```
"""

from common.config.settings import (
    BaseServiceSettings,
    ReportDeliveryServiceSettings,
)


def get_settings(service_name: str | None = None) -> BaseServiceSettings:
    """
    Get settings instance for the specified service.

    Service names are matched loosely, so "report-delivery", "reports" and
    "report-delivery-service" all resolve to ReportDeliveryServiceSettings.
    Any other value (or None) returns BaseServiceSettings.

    Note:
        - Each call returns a new instance (settings are not cached)
        - Service name matching is case-insensitive
    """
    if service_name:
        service_lower = service_name.lower()
        if service_lower == "report-delivery-service" or "report" in service_lower:
            return ReportDeliveryServiceSettings()
    # Default to base settings
    return BaseServiceSettings()


__all__ = [
    "get_settings",
]
