"""Infrastructure layer package.

Implements Port interfaces with concrete adapters (PostgreSQL via
SQLAlchemy async, plus in-memory twins used by tests and local runs).
The authz and labels layers MUST NOT import from this package directly;
only src/main.py wires adapters in.
"""
