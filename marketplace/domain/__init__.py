"""
Pure domain types and rules.

Nothing in this package touches the database or FastAPI; services combine these
rules with the repositories.
"""
