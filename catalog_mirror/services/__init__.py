"""Business logic services.

Services hold the catalog logic and are called by routes, the scheduler and
scripts:
- catalog_client: upstream snapshot fetch/decode
- reconciliation: one sync cycle (retention, upserts, guarded deletes)
- merge / options: pure merge policy and options schema helpers
- products / export: browse, edit and CSV export
"""
