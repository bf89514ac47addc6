"""Request logging and CORS middleware for the guard HTTP surface."""

from .audit import AuditMiddleware
from .cors import PermissiveCORSMiddleware

__all__ = ["AuditMiddleware", "PermissiveCORSMiddleware"]
