"""
Schemas module - Request/Response schemas for API endpoints.

Everything lives in tmv_platform.schemas.schemas.
"""
