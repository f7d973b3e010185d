"""Application services built on the entitlement engine."""
