from datetime import datetime, timezone

import pytest

from parley.domain.identity.models import User
from parley.domain.social import policy
from parley.domain.social.exceptions import Blocked, SelfFriendRequest


def _user(user_id: str, blocked=()) -> User:
    return User(
        id=user_id,
        name=user_id,
        password_hash="x",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        blocked_users=frozenset(blocked),
    )


def test_can_message_when_nobody_blocks():
    assert policy.can_message(_user("a"), _user("b"))


def test_block_on_either_side_denies_both_directions():
    a = _user("a", blocked={"b"})
    b = _user("b")
    assert not policy.can_message(a, b)
    assert not policy.can_message(b, a)


def test_unrelated_blocks_do_not_matter():
    a = _user("a", blocked={"c"})
    b = _user("b", blocked={"d"})
    assert policy.can_message(a, b)


def test_ensure_can_message_raises_blocked():
    with pytest.raises(Blocked) as exc_info:
        policy.ensure_can_message(_user("a"), _user("b", blocked={"a"}))
    assert exc_info.value.reason == "blocked"


def test_guard_not_self():
    policy.guard_not_self("a", "b")
    with pytest.raises(SelfFriendRequest):
        policy.guard_not_self("a", "a")
