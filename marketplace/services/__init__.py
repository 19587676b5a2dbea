"""
Use cases of the identity and vendor lifecycle engine.

Each service orchestrates the store adapters to implement one business rule
(match an assertion, reconcile it to an account, allocate a username, clean
orphaned applications, drive the vendor lifecycle). Routers call these
services instead of touching the stores directly.
"""
