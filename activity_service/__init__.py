"""Activity lifecycle and enrollment service."""
