"""Bundled conformance suite run against each target by the test executor."""
