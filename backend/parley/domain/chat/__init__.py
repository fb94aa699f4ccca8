"""Chat domain exports."""

from .models import Message

__all__ = ["Message"]
