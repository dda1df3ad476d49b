"""
Client package: a Python client for the rental listings API and the
session state that drives a user interface on top of it.
"""

from .api_client import APIRequestError, RentalAPIClient
from .session import Page, RentalSession

__all__ = ["APIRequestError", "RentalAPIClient", "Page", "RentalSession"]
