"""Outbound clients for third-party card data."""
