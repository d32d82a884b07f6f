"""
Web Crawler System

Crawls a single host from a seed address and builds its sitemap.
"""

__version__ = "1.0.0"
__description__ = "A concurrent single-host web crawler that produces a sitemap"
