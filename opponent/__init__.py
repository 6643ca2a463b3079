"""Automated opponent: proposal service providers, the heuristic fallback and the agent tying them together."""
