"""Application use cases for threads, messages and notifications."""
