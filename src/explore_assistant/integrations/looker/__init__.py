"""Looker integration.

Environment variables:
  - LOOKERSDK_BASE_URL (e.g. "https://example.looker.com")
  - LOOKERSDK_CLIENT_ID
  - LOOKERSDK_CLIENT_SECRET
"""

from .client import LookerApiError, LookerClient

__all__ = ["LookerApiError", "LookerClient"]
