"""Cyphire: engagement workrooms for a freelance marketplace."""
