# Services package init
"""
Notespace Backend — Services Layer
====================================

Service Inventory:
    - WorkspaceService: workspace CRUD, path allocation, cascading delete
    - NoteService:      note CRUD and the attachment lifecycle
    - BlobStore:        attachment storage interface (LocalBlobStore on disk)
    - ownership:        the shared owner check
    - slug:             name → path and collision suffixes
"""
