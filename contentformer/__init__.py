"""Contentformer: turn a video transcript into content ideas, video scripts and LinkedIn posts."""

__version__ = "0.1.0"
