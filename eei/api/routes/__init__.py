"""
API route modules.
"""

from eei.api.routes import audit, batches, drift, health

__all__ = ["audit", "batches", "drift", "health"]
