"""
Crawl state kept for the lifetime of a crawl.
"""

from .duplicate_filter import DuplicateFilter

__all__ = ['DuplicateFilter']
