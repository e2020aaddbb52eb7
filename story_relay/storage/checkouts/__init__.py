"""Checkout ledger models and CRUD helpers."""

from story_relay.storage.checkouts.base import CheckoutEntry
from story_relay.storage.checkouts import crud

__all__ = ["CheckoutEntry", "crud"]
