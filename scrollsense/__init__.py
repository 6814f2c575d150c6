"""scrollsense: on-device app usage sessions by content category."""

__version__ = '1.0.0'
