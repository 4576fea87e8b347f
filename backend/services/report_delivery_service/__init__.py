"""
Report Delivery Service Package

This package provides the Report Delivery Service: scheduled and on-demand
delivery of analytic reports by email. Jobs bind either a fixed report
presentation or a reusable template, render it into an HTML email with
personalized subject/body text, and dispatch it through SMTP, recording
every outcome.

Package Structure:
    - main.py: FastAPI application entry point
    - api/: API endpoint definitions and routing
    - clients/: Warehouse connector
    - database/: Repositories over the ORM models in common.models
    - models/: Domain models (content, jobs)
    - services/: Refresh, variable resolution, rendering, delivery and
      execution tracking
    - templates/: Email skeletons and slide template

Usage:
    ```bash
    uvicorn services.report_delivery_service.main:app --port 8004
    ```
"""
