"""Data stores for persistence.

Stores handle:
- PostgreSQL: DB session, engine lifecycle
- Catalog: products/variants upsert, guarded deletes, view queries

No scheduling or HTTP logic in stores - that belongs in services.
"""
