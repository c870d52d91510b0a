# app/models/user.py
"""
Database model for users.
Represents a marketplace account (parent, childminder or administrator),
holding login credentials and the role used for dashboard access control.
"""
import uuid
from tortoise import fields, models

ROLES = ("parent", "childminder", "admin")

class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many sent Messages (via related_name="sent_messages")
    - Has many received Messages (via related_name="received_messages")

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Email must be unique across all users; it is the login name
    - Role determines which dashboard endpoints the user may call
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: also the push-channel recipient id
    email = fields.CharField(max_length=256, unique=True, index=True)  # Login name
    name = fields.CharField(max_length=256, null=True)  # Display name shown to conversation partners
    image = fields.CharField(max_length=1024, null=True)  # Profile image URL
    password_hash = fields.CharField(max_length=255)  # Argon2 hash
    role = fields.CharField(max_length=16, default="parent")  # "parent", "childminder" or "admin"
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
