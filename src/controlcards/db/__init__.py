"""Persistent store: SQLite via async SQLAlchemy.

Learn: One Database object per process owns the engine, the connection
state machine and the lock that serializes every store call. Services
never touch the engine directly; they borrow a Repository from
``Database.session()``.
"""
