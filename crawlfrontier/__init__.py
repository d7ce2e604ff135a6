"""
Crawl Frontier

Request scheduling core of a web crawler: breadth-first ordering,
lifetime deduplication and same-site scope control.
"""

__version__ = "1.0.0"
__description__ = "Request scheduling core for a breadth-first web crawler"
