"""flowvault: versioned workflow deployments on object storage."""

__version__ = "0.1.0"
