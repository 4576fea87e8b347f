"""
Base Utilities for Report Delivery Service Database Layer

Constants:
    SERVICE_NAME: The service name used for database session routing

See Also:
    - services.report_delivery_service.database.jobs_repository: Job and execution log operations
    - services.report_delivery_service.database.content_repository: Presentation, template and slide operations
    - common.database: Shared database session management
"""

# Service name constant for database session routing
SERVICE_NAME = "report-delivery-service"
