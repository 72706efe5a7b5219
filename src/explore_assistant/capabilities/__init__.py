"""Capability interfaces for external collaborators."""
