"""Item and file transfer operations."""
