# app/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: Marketplace account (parent, childminder, admin)
- Message: Direct message between a parent and a childminder
"""
from .user import User
from .message import Message
