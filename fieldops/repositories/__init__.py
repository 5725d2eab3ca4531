"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each aggregate (agents,
customers, visits, inventory items) on an injected AsyncSession.
"""
