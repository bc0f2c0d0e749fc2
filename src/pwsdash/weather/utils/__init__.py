"""Weather utility classes."""

from pwsdash.weather.utils.units import UnitConverter

__all__ = ["UnitConverter"]
