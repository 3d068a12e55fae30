# Routes package init
"""
Notespace Backend — API Routes Package
========================================

Route Inventory:
    - workspaces.py: /api/workspaces        (list, create, rename, delete, migrate-paths)
    - notes.py:      /api/notes             (list, create, update, delete,
                                             upload-url, file-url)
    - blobs.py:      /api/blobs             (upload target, download)
    - health.py:     GET /health

Routes stay thin: read the request, resolve the caller, call a service.
Ownership and attachment rules live in the services.
"""
