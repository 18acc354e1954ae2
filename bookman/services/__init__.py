# Services package init
"""
Bookman Web: Services Layer
===========================

What:  Catalog persistence, between the routes (HTTP) and PostgreSQL.

Service Inventory:
    - BookStore (abstract): search, body, upload, edit, ping
    - PostgresBookStore: BookStore over the pooled AsyncEngine

Routes only see the abstract interface, so tests swap in an in-memory store.
"""
