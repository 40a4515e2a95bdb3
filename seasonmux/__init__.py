"""Compile downloaded episode fragments into subtitled, library-named containers."""

__version__ = "0.1.0"
