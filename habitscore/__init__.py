"""Habitscore: weekly habit scoring service."""
