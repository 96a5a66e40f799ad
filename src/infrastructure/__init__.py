"""
Infrastructure layer - external service integrations.

- storage: Object storage (S3)

These wrappers translate between vendor errors and formats and our domain
models.
"""
