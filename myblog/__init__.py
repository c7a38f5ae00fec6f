"""
Backend package for the blog platform.

This package provides a FastAPI application serving posts, the contact
directory, support-message intake and media uploads, with swappable record
store, media storage, identity and notification backends.
"""

__version__ = "1.0.0"
