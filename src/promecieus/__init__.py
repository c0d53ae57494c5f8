"""Terminal client for the PromeCIeus job status service."""

__version__ = "0.1.0"
