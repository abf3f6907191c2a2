"""
CivicBridge Backend: Services Layer
===================================

Rules and persistence between the routes and the database. Every service is
a module-level singleton that receives the request's AsyncSession per call.

Service Inventory:
    - ProjectService:         CRUD, lifecycle, search, latest feed
    - ApplicationService:     apply / withdraw toggle, applicant lookups
    - BookmarkService:        bookmark toggle
    - FileService:            attachment validation and storage
    - NotificationDispatcher: status-change fan-out with retries
    - query_validator:        search parameters → filter clauses
"""
