"""
Notespace Backend — Application Package Initializer
=====================================================

Architecture Note:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, caller resolution
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership, slugs, attachments
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database  │  Blob Store           │  ← Async sessions / local files
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
