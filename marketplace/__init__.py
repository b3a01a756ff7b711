"""
Marketplace backend.

Users and products over a document store, with local and Google sign-in,
role-based authorization and an admin dashboard API.
"""

__version__ = "1.0.0"
