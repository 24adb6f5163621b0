"""Orchestration layer — queue processor, condition chain, cycles and sessions."""
