"""Live query subscriptions."""
