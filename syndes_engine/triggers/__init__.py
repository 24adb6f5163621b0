"""Trigger scripts — condition runtimes and script sessions."""
