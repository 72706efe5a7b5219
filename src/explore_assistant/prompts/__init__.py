"""Prompt composition for the explore assistant pipeline."""

from .composer import PromptComposer, UsedFields, format_field_row

__all__ = ["PromptComposer", "UsedFields", "format_field_row"]
