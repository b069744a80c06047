"""
TextStation Backend — Application Package Initializer
=====================================================

What: Marks the `textstation` directory as a Python package.
Why:  Enables module imports like `from textstation.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows the same layered shape for every feature:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Analysis engine, snippets, export
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The text analyzer sits in the services layer but touches nothing below it:
    it receives an already-loaded rule set and returns a fresh result.
"""

__version__ = "1.0.0"
