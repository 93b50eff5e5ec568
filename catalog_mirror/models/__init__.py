"""SQLAlchemy ORM models.

Models represent database tables:
- products: Mirrored catalog products (external product id as key)
- variants: Product variants (external variant id as key, no FK to products)
"""

from catalog_mirror.models.product import Product
from catalog_mirror.models.variant import Variant

__all__ = ["Product", "Variant"]
