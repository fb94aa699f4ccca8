"""Centralized password hashing configuration.

All credential checks go through the single Argon2id hasher built here so the
cost parameters stay consistent across signup and login.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from parley.settings import settings

PASSWORD_HASHER = PasswordHasher(
	time_cost=settings.password_time_cost,
	memory_cost=settings.password_memory_cost,
	parallelism=settings.password_parallelism,
	hash_len=32,
	salt_len=16,
)


def hash_password(password: str) -> str:
	"""Hash a password using Argon2id."""
	return PASSWORD_HASHER.hash(password)


def verify_password(hash: str, password: str) -> bool:
	"""Return True when the password matches the stored hash."""
	try:
		return PASSWORD_HASHER.verify(hash, password)
	except (VerificationError, InvalidHashError):
		return False
