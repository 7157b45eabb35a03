"""
Furniture package configurator and pricing engine.

In-memory, synchronous selection state for package (bundle) and
product-detail pages: category quotas, material surcharges, price
aggregation and selection progress. Catalog fetch and order submission
stay with the caller.
"""
