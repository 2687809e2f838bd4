"""
Transports carrying queries and item requests to the content API.
"""

from .base import Transport
from .http import HTTPTransport

__all__ = ["Transport", "HTTPTransport"]
