"""
Union community site API

FastAPI backend for the union site client: accounts, board posts,
membership applications, site settings and push notifications.
"""

__version__ = "1.0.0"
