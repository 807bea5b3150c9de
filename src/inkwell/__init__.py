"""Inkwell — blog and admin backend.

Session- and token-authenticated API for publishing blog posts,
managing editor/admin accounts, and uploading cover images.
"""

__version__ = "0.1.0"
