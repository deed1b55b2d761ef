"""Test package for the Thought Review Scheduler application."""
