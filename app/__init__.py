"""
                Food Ordering API

Backend for a food ordering web app: user profiles, restaurant management
and search, Stripe Checkout payments and order tracking, with the same
hybrid Mock/Real service architecture for payments, identity and images.

Version: 1.0.0
"""

__version__ = "1.0.0"
