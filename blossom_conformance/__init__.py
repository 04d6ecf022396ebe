"""Conformance test runner for Blossom blob storage servers."""
