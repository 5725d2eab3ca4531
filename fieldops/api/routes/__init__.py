"""
API route modules.

This package contains subrouters for:
- Visits: agent visit submission and per-visit inventory
- Customers: registration, lookup, inventory and artifact regeneration

Routers are included from fieldops.api.main (under the /api/v1 prefix).
"""
