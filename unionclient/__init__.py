"""
Union community site client

Navigation state, role gating, and local/remote data reconciliation for the
union site.
"""

__version__ = "1.0.0"
