"""Discipline engine: XP, ranks, decay, proof-of-work and challenges."""

__version__ = "0.1.0"
