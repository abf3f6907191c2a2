"""
CivicBridge Backend: Application Package Initializer
====================================================

What: Backend for the platform where politicians publish projects and
      students apply to them, bookmark them and answer project questions.

Architecture Note:
    The backend is layered the same way on every request path:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (stores, validators)     │  ← Lifecycle, search, toggles
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Authentication happens upstream. The gateway forwards the caller's id in
    a header and `civicbridge.auth.get_current_user` resolves it to a User.
"""

__version__ = "1.0.0"
