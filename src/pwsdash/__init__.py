"""Personal weather station dashboard with a fetch-freshness cache."""

__version__ = "0.1.0"
