"""Automated league participants and their prediction strategies."""
