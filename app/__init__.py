"""
                        Food Ordering API

Backend for a food delivery storefront: catalog, per-user carts and
orders paid through a hosted checkout page.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
