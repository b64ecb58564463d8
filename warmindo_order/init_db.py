"""
Create the storefront schema on a self-hosted database.

On the managed Supabase project the tables, the queue view and the server
functions already exist; this script is for local Postgres or SQLite
development databases.

Usage:
    DATABASE_URL=postgresql://... python -m warmindo_order.init_db

SQLite has no stored functions, so only the tables and the queue view are
created there; the catalog and table lookups fall back to direct queries and
proof uploads need a Postgres database.
"""

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine

from .models import Base

logger = logging.getLogger(__name__)

PAID_STATUSES_SQL = "('paid', 'processing', 'completed', 'confirmed')"
TERMINAL_STATUSES_SQL = "('completed', 'canceled')"

QUEUE_VIEW_SQL = {
    "postgresql": f"""
CREATE OR REPLACE VIEW vw_queue_today AS
SELECT o.id, o.queue_no, o.guest_name, o.contact, o.service_type, o.table_no,
       o.status AS order_status,
       (o.status IN {PAID_STATUSES_SQL}) AS is_paid,
       o.created_at
FROM orders o
WHERE o.created_at >= date_trunc('day', now())
  AND o.status NOT IN {TERMINAL_STATUSES_SQL}
""",
    "sqlite": f"""
CREATE VIEW IF NOT EXISTS vw_queue_today AS
SELECT id, queue_no, guest_name, contact, service_type, table_no,
       status AS order_status,
       CASE WHEN status IN {PAID_STATUSES_SQL} THEN 1 ELSE 0 END AS is_paid,
       created_at
FROM orders
WHERE date(created_at) = date('now', 'localtime')
  AND status NOT IN {TERMINAL_STATUSES_SQL}
""",
}

POSTGRES_FUNCTIONS_SQL = [
    """
CREATE OR REPLACE FUNCTION menu_catalog(p_limit integer, p_only_active boolean)
RETURNS TABLE (id varchar, name varchar, description text, price integer,
               category_name varchar, is_active boolean)
LANGUAGE sql STABLE AS $$
    SELECT m.id, m.name, m.description, m.price, c.name, m.is_active
    FROM menus m
    LEFT JOIN menu_categories c ON c.id = m.category_id
    WHERE (NOT p_only_active OR m.is_active)
    ORDER BY m.name
    LIMIT p_limit
$$
""",
    """
CREATE OR REPLACE FUNCTION get_free_tables(p_limit integer)
RETURNS TABLE (label varchar, capacity integer)
LANGUAGE sql STABLE SECURITY DEFINER AS $$
    SELECT t.label, t.capacity FROM tables t
    WHERE t.status = 'empty'
    ORDER BY t.label
    LIMIT p_limit
$$
""",
    """
CREATE OR REPLACE FUNCTION update_order_proof_url(p_payment_code varchar, p_proof_url varchar)
RETURNS boolean
LANGUAGE plpgsql SECURITY DEFINER AS $$
BEGIN
    UPDATE orders SET proof_url = p_proof_url, updated_at = now()
    WHERE payment_code = upper(trim(p_payment_code));
    RETURN FOUND;
END
$$
""",
]


def create_queue_view(engine: Engine) -> None:
    ddl = QUEUE_VIEW_SQL.get(engine.dialect.name)
    if ddl is None:
        logger.warning("No queue view DDL for dialect %s", engine.dialect.name)
        return
    with engine.begin() as conn:
        conn.execute(text(ddl))


def init_schema(engine: Engine) -> None:
    """Create tables, the queue view and (on Postgres) the server functions."""
    Base.metadata.create_all(bind=engine)
    create_queue_view(engine)
    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            for ddl in POSTGRES_FUNCTIONS_SQL:
                conn.execute(text(ddl))
    logger.info("Schema initialized on %s", engine.dialect.name)


if __name__ == "__main__":
    from .db import get_engine
    from .logging_config import setup_logging

    setup_logging()
    init_schema(get_engine())
