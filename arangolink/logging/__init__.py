"""Structured logging for arangolink."""

from .logging import LogManager

__all__ = ["LogManager"]
