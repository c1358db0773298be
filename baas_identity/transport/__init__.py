"""
Request transport for the object store API.
"""

from .base import Transport
from .http import HttpTransport

__all__ = ["Transport", "HttpTransport"]
