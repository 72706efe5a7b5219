"""Host servers."""
