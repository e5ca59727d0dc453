"""
Middleware modules for ASGI applications serving the portal.

This package contains middleware components for:
- Route gating of the admin area by session cookies
- Maintenance-mode redirects for public pages
"""
