"""
Persistence adapters.

Services depend on the store protocols in ``base``; the SQL classes here are the
SQLAlchemy-backed implementations used in production and in the test-suite.
"""
