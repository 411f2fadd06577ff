"""erpsync: real-time synchronisation layer for ERP resource collections."""

__version__ = "0.1.0"
