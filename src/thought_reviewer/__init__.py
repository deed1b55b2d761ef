"""Thought Review Scheduler: capture categorized thoughts and drain them into a digest."""

__version__ = "0.1.0"
