"""
Web crawler core components.
"""

from .content import Content, normalize_url
from .url_frontier import URLFrontier
from .fetcher import WebFetcher, FetchOutcome
from .parser import ContentParser
from .dispatcher import Dispatcher

__all__ = [
    'Content', 'normalize_url',
    'URLFrontier',
    'WebFetcher', 'FetchOutcome',
    'ContentParser',
    'Dispatcher'
]
