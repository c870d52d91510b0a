# app/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Application initialization and default admin creation
- db: Database configuration and connection management
- security: Password hashing and JWT access tokens
- sse: Server-sent event connection registry and frame encoding
"""
