"""
Minna no Nasu App - backend API for the Nasu regional community app

This package contains the HTTP routes, services and matching logic behind the
community pages: store matching, point deals, referrals, Stripe billing, the AI
utility pages, the mood tracker and local weather.
"""

__version__ = "1.0.0"
__author__ = "Minna no Nasu App Team"

__all__ = ["__version__"]
