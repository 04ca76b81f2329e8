"""
homebook - booking window, pricing and draft engine for the home services storefront.
"""

__version__ = "0.1.0"
