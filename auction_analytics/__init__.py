"""Auction bid history and analytics service."""
