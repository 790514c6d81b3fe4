"""Bid history engine: enrichment, anonymization, stats, trends, pagination."""
