"""Dockyard - install, remove and inspect containerized services on one host."""

__version__ = "0.3.0"
