"""licenseme — find git repositories and give them a license."""

__version__ = "0.4.0"
