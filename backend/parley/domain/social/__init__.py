"""Social domain exports."""

from .exceptions import Blocked, DuplicateRequest, FriendshipNotFound, SelfFriendRequest  # noqa: F401
from .models import Friendship, FriendshipStatus  # noqa: F401
