"""
Discovery: platform-specific candidate search (Google Maps, LinkedIn, Instagram).
"""

from .sources import DiscoverySource, get_source

__all__ = ["DiscoverySource", "get_source"]
