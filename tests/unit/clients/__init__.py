"""Collaborator client tests."""
