# Middleware package init
"""
TextStation Backend — Middleware Package
=========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Rate Limit] → [Logging] → [GZip] → [CORS] → Route

    - Request ID first: 429 bodies and access lines carry the ID
    - Rate limit next: rejected requests cost nothing downstream
    - Responses pass back through the chain in reverse, which is where the
      request ID header is added and the duration is measured
"""
