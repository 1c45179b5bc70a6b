"""
Single source of truth for database tables that exist after migrations (001–003).

Use these names when writing raw SQL.
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "users",
    "subscriptions",
    "flights",
)
