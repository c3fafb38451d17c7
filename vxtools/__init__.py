"""Helpers for SQL building, DB-API access, mail, ticking, TCP tests, file watching and page templates."""

__version__ = "0.1.0"
__all__ = ["sqltable", "db", "smtp", "ticker", "tcptest", "watch", "header", "template"]