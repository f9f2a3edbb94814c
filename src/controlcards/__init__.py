"""controlcards: control card tracking with role-based access.

Control cards are administrative records (executor, reporter, deadline,
resolution) kept in a single-writer SQLite file. Accounts log in with a
password, receive a signed token, and every card operation is gated by
the role carried in that token.
"""

__version__ = "0.1.0"
