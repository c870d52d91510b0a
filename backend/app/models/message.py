# app/models/message.py
import uuid
from tortoise import fields, models

class Message(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    sender = fields.ForeignKeyField("models.User", related_name="sent_messages", on_delete=fields.CASCADE)
    receiver = fields.ForeignKeyField("models.User", related_name="received_messages", on_delete=fields.CASCADE)

    content = fields.TextField()
    read = fields.BooleanField(default=False)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "messages"
