"""Conversation and notification core for the community marketplace."""
