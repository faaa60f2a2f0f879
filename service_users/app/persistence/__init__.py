"""
Persistence package for Users Service.

PostgreSQL (through SQLAlchemy's async engine) is the source of truth for
user records.
"""
