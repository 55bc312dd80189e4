"""Application services for lightningd operations."""

from .lightningd_service import LightningdService

__all__ = [
    "LightningdService",
]
