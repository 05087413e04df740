"""Test doubles for host collaborators."""
