"""Typed settings stored in a JSON document, addressed by JSON pointers, with change signals."""

__version__ = "0.1.0"
__all__ = ["pointer", "data", "manager", "setting"]