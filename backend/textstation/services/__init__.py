# Services package init
"""
TextStation Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database, Google
       Drive and the file system.

Service Inventory:
    - TextAnalyzer: Pure rule-driven scoring of a text
    - RuleRepository: Loads the active style rules for a media type
    - AnalysisService: RuleRepository + TextAnalyzer for /api/analyze
    - SnippetService: Snippet CRUD
    - HistoryService: Client log batches and document backups, with retention
    - GoogleCredentialsProvider: Service-account credentials per scope set
    - DriveService: Drive full-text search and PDF backup upload
    - FileService: Local storage of exported files
    - ExportService: PDF rendering, storage and Drive backup

Each module exposes a stateless singleton (e.g. `snippet_service`) that
routes import directly; tests construct their own instances or patch the
singleton.
"""
