"""
Feature modules live under this package.

Each module owns its models, its queries (service.py) and its JSON routes, while
reusing platform primitives (sessions, guards, audit, storage, DB session).
"""
