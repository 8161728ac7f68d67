"""
Application package initializer.

The application is split into the HTTP layer (``api``), request and
document schemas (``schemas``), the service layer holding the business
rules (``services``) and shared infrastructure (``core``): settings,
logging, security primitives and the document store.
"""

from .main import app  # noqa: F401
