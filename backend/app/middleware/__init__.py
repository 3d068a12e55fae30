# Middleware package init
"""
Notespace Backend — Middleware Package
========================================

Middleware Chain (request direction):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: rejected requests cost nothing further
    2. Request ID: correlation ID for every later log line
    3. Logging: one access line with status, duration and caller
"""
