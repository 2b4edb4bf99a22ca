"""Imperative shell — database, logging and external collaborator clients."""
