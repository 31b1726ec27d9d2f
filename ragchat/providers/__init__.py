"""Concrete adapters for the interfaces in :mod:`ragchat.interfaces`.

Subpackages are imported directly by ``ragchat.main`` so that an SDK is
only loaded when its provider is selected.
"""
