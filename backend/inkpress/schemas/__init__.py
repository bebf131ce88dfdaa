"""
Inkpress Backend — Pydantic Request/Response Schemas
=====================================================

What:  The API contract between the client and the backend.
Why:   Schemas are separate from SQLAlchemy models so the JSON shape
       (camelCase, populated references, derived fields) can differ from
       the table layout, and so internal columns like password_hash never
       leak.
"""
