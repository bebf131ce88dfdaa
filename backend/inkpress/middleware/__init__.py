"""
Inkpress Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    1. Request ID: correlation ID for log lines and every error body,
                   429 responses included
    2. Rate Limit: reject over-quota clients before any other work
    3. Logging:    one access line per request, tagged with that ID
"""
