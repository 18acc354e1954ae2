# Routes package init
"""
Bookman Web: API Routes Package
===============================

Route Inventory:
    - books.py:   GET  /api/search          (list or search books)
                  POST /api/upload          (add books from .txt files)
                  POST /api/edit            (rename / re-author a book)
                  GET  /api/panic           (always 500)
                  GET  /book/{id}           (full text)
    - health.py:  GET  /health              (service health check)

Everything else falls through to the static file mount in bookman.main.

Routes stay thin: parse the request, call the BookStore from the AppContext
they were built with, shape the response.
"""
