"""Interface adapters exposing the messaging core."""
