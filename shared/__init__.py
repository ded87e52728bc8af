"""
Shared utilities for the Staff Gateway client.

This package aggregates the ambient building blocks used by the client:

- config: Client configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- errors: Base error type and error responses
- test_helpers: Factories and fakes used by the test suites

Do not import from staff_gateway into shared/.
"""
