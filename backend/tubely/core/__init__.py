"""
Core infrastructure for the Tubely backend.

- auth: Bearer JWT validation and the current-user dependency
- database: MongoDB async client with Motor driver and connection pooling
- storage: S3-compatible storage client for MinIO/AWS S3 operations

Clients follow the singleton pattern and are created at startup.
"""
