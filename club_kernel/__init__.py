"""
Club Kernel - core of the club administration back office.

Provides:
- Store access (SQLAlchemy engine, sessions, declarative base)
- Typed error hierarchy shared by every module
- Structured JSON logging
- Injectable clocks, money formatting and payment references
"""

__version__ = "0.1.0"
