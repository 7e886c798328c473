"""ProcTrace — record, stream and replay resource traces of running processes."""

__version__ = "0.1.0"
