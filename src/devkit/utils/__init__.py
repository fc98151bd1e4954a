"""Shared utilities: configuration, logging and host OS helpers."""
