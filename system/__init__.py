"""
system — Local System Helpers

Collaborators the deterministic fast path talks to (weather).
Part of Vesper — Local-First Personal Assistant.
"""
