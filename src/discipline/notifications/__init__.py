"""User-visible notifications."""
