"""User search domain."""
