"""API v1 endpoints."""

from image_delivery.api.v1.endpoints import health, image, upload

__all__ = ["health", "image", "upload"]
