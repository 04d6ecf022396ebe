"""Start strategies for targets under test."""
