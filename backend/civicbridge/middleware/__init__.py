"""
CivicBridge Backend: Middleware Package
=======================================

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Access Log] → [GZip] → [CORS] → Route

    1. Rate limit rejects abusive clients before any work is done
    2. Request ID sets the correlation id every later log line carries
    3. Access log records method, path, status and duration per request
"""
