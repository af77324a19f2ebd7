"""Manifesto store backend and client"""

__version__ = "1.0.0"
