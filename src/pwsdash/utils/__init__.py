"""Common utility functions and helpers for the pwsdash package."""

from pwsdash.utils.time import TimeUtils

__all__ = ["TimeUtils"]
