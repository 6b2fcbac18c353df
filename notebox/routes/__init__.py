# Routes package init
"""
Notebox Backend — API Routes Package
======================================

Route Inventory:
    - notes.py:        GET/POST /notes, GET/PUT/DELETE /notes/{id},
                       PUT /notes/{id}/toggle-pin
    - attachments.py:  POST /notes/{id}/upload-file, DELETE /notes/{id}/delete-file
    - files.py:        GET /files/{bucket}/{key}   (local store retrieval URLs)
    - health.py:       GET /health

Routes stay thin: parse the request, call a service, pick the status code.
"""
