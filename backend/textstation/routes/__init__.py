# Routes package init
"""
TextStation Backend — API Routes Package
=========================================

What:  HTTP route handlers for the editor client.

Route Inventory:
    - analysis.py:  POST /api/test-connection, POST /api/analyze
    - drive.py:     POST /api/search, POST /api/export-pdf
    - snippets.py:  POST /api/get-snippets, /api/get-snippet, /api/save-snippet,
                    /api/update-snippet, /api/delete-snippet
    - history.py:   POST /api/aggregate-logs, /api/create-backup,
                    /api/get-backups, /api/restore-backup
    - files.py:     GET  /api/files/{path}
    - health.py:    GET  /health

Routes stay thin: check required fields, call a service, return its model.
"""
