"""Interfaces the registry depends on."""
