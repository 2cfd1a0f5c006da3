"""Infrastructure adapters: persistence, realtime fan-out, email and identity."""
