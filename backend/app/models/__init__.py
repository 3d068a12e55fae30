"""
Notespace Backend — ORM Models

Importing this package registers every table with Base.metadata
(used by Alembic autogenerate and by the test suite's create_all).
"""

from app.models.note import Attachment, Note
from app.models.workspace import Workspace

__all__ = ["Attachment", "Note", "Workspace"]
