"""
Product Repository - Data Access Layer for Products

Handles all database queries for products and returns Product domain models.
Also owns the conditional stock decrement used by the inventory guard.
"""
from typing import List, Optional, Tuple, Dict
from app.domain.product import Product, ProductCreate, ProductUpdate
from app.core.database import get_db_connection_dict


PRODUCT_COLUMNS = """
    id, name, description, price, original_price, image_url, category,
    features, capacity, material, colors, rating, review_count,
    stock, is_active, created_at, updated_at
"""


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        """Helper method to map database row to Product domain model."""
        return Product(
            id=row['id'],
            name=row['name'],
            description=row['description'] or "",
            price=row['price'],
            original_price=row.get('original_price'),
            image_url=row.get('image_url'),
            category=row['category'],
            features=row.get('features') or [],
            capacity=row.get('capacity'),
            material=row.get('material'),
            colors=row.get('colors') or [],
            rating=row['rating'],
            review_count=row['review_count'],
            stock=row['stock'],
            is_active=row['is_active'],
            created_at=row['created_at'],
            updated_at=row.get('updated_at')
        )

    def find_by_id(self, product_id: int, active_only: bool = False) -> Optional[Product]:
        """
        Find product by ID

        Args:
            product_id: Internal product ID
            active_only: Treat inactive products as missing

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            query = f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = %s"
            if active_only:
                query += " AND is_active = true"
            cursor.execute(query, (product_id,))

            row = cursor.fetchone()
            if not row:
                return None

            return self._map_row_to_product(row)

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        is_active: Optional[bool] = True,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find products with filters, newest first

        Args:
            category: Filter by category
            search: Search in name or description
            is_active: Filter by active status (None for all)
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            # Build WHERE clause
            conditions = []
            params = []

            if category:
                conditions.append("category = %s")
                params.append(category)

            if is_active is not None:
                conditions.append("is_active = %s")
                params.append(is_active)

            if search:
                conditions.append("(name ILIKE %s OR description ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term])

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            # Get total count
            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            # Get products
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products
                WHERE {where_clause}
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()
            products = [self._map_row_to_product(row) for row in rows]

            return products, total

        finally:
            cursor.close()
            conn.close()

    def count_all(self) -> int:
        """Count every product, active or not"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT COUNT(*) as total FROM products")
            return cursor.fetchone()['total']

        finally:
            cursor.close()
            conn.close()

    def create(self, data: ProductCreate) -> Product:
        """Insert a product and return it"""
        return self.bulk_create([data])[0]

    def bulk_create(self, items: List[ProductCreate]) -> List[Product]:
        """
        Insert several products in one transaction

        Returns:
            Created products in input order
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            created = []
            for item in items:
                values = item.model_dump(mode="python")
                values['category'] = item.category.value
                cursor.execute(f"""
                    INSERT INTO products (
                        name, description, price, original_price, image_url, category,
                        features, capacity, material, colors, rating, review_count,
                        stock, is_active, created_at, updated_at
                    ) VALUES (
                        %(name)s, %(description)s, %(price)s, %(original_price)s, %(image_url)s,
                        %(category)s, %(features)s, %(capacity)s, %(material)s, %(colors)s,
                        %(rating)s, %(review_count)s, %(stock)s, %(is_active)s, NOW(), NOW()
                    )
                    RETURNING {PRODUCT_COLUMNS}
                """, values)
                created.append(self._map_row_to_product(cursor.fetchone()))

            conn.commit()
            return created

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def update(self, product_id: int, data: ProductUpdate) -> Optional[Product]:
        """
        Apply a partial update

        Only fields explicitly set on `data` are written.

        Returns:
            Updated product or None if not found
        """
        changes = data.model_dump(exclude_unset=True, mode="python")
        if 'category' in changes and changes['category'] is not None:
            changes['category'] = data.category.value

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            assignments = [f"{column} = %s" for column in changes]
            assignments.append("updated_at = NOW()")
            params = list(changes.values()) + [product_id]

            cursor.execute(f"""
                UPDATE products
                SET {", ".join(assignments)}
                WHERE id = %s
                RETURNING {PRODUCT_COLUMNS}
            """, params)

            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_product(row) if row else None

        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def deactivate(self, product_id: int) -> Optional[Product]:
        """Soft delete: hide the product from the catalog and from new orders"""
        return self.update(product_id, ProductUpdate(is_active=False))

    def decrement_stock(self, product_id: int, quantity: int, conn) -> Optional[Dict]:
        """
        Atomically take `quantity` units from an active product

        Runs inside the caller's transaction; does not commit. The WHERE clause
        makes the check and the decrement a single row update, so concurrent
        orders can never drive stock below zero.

        Returns:
            Dict with id, price and remaining stock, or None when the product
            is missing, inactive or short on stock
        """
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE products
                SET stock = stock - %s, updated_at = NOW()
                WHERE id = %s AND is_active = true AND stock >= %s
                RETURNING id, price, stock
            """, (quantity, product_id, quantity))

            return cursor.fetchone()

        finally:
            cursor.close()

    def find_stock(self, product_id: int, conn) -> Optional[Dict]:
        """Stock snapshot (id, is_active, stock) within the caller's transaction"""
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, is_active, stock
                FROM products
                WHERE id = %s
            """, (product_id,))

            return cursor.fetchone()

        finally:
            cursor.close()
