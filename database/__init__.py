"""
database: ORM models, engine/session factory and query helpers.
"""
