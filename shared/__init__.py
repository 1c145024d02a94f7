"""
Shared utilities for the Hybrid Authorization Service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI service shell with health and metrics routes

Any cross-service logic should live here to avoid import cycles. Do not
import from service_* packages into shared/.
"""
