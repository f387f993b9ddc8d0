"""Todo API backed by SQL Server, with credentials pulled from Secret Manager."""

__version__ = "1.0.0"
