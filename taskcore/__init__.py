"""Paradigm-independent helpers: configuration, seeded randomization, timing and file output."""
