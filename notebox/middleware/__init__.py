# Middleware package init
"""
Notebox Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [Timeout] → Route Handler

    - CORS answers preflight OPTIONS before anything else runs.
    - Request ID sets the correlation ID the other layers log with.
    - Logging records status and duration, including 504s from Timeout.
    - Timeout bounds the handler to REQUEST_TIMEOUT_SECONDS.
"""
