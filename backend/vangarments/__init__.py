"""Vangarments entitlement engine and upgrade flow."""
