"""Authentication hardening layer for the multi-tenant threat tracking platform."""

__version__ = "0.1.0"
