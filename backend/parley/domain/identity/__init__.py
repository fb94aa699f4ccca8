"""Identity domain exports."""

from .exceptions import DuplicateName, UserNotFound  # noqa: F401
from .models import User  # noqa: F401
