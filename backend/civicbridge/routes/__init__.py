"""
CivicBridge Backend: API Routes Package
=======================================

Route Inventory:
    - projects.py: /projects/...  (CRUD, search, lifecycle, applications,
                                   bookmarks, attachments)
    - health.py:   GET /health

Handlers stay thin: parse the request, call a service, choose the status
code. Rules and persistence live in civicbridge.services.
"""
