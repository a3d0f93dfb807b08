"""Clip Review: collaborative review pipeline for Twitch stream clips."""

__version__ = "0.1.0"
