"""Data models for target configuration and test results."""
