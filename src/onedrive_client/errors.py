"""Base exception shared by every error the library raises."""


class OneDriveError(Exception):
    """Base class for all onedrive_client errors."""
