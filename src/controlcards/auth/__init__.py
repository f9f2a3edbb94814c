"""Authentication and authorization.

Learn: One authentication path: username/password → bcrypt check →
signed JWT carrying {sub, role, exp}. Every gated operation decodes that
token into a CurrentIdentity and checks its role against a static
policy table before touching the store.
"""
