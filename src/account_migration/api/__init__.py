"""Identity service API client."""

from .client import IdentityToolkitClient

__all__ = ["IdentityToolkitClient"]
