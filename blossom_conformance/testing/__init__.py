"""Factories and payload builders shared by the test suites."""
