"""Media Audit Suite: media asset auditing and operator announcements."""

__version__ = "1.0.0"
