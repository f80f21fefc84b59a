"""Prompt templates and builders."""

from .loader import render

__all__ = ["render"]
