"""Visitor registration, check-in/check-out and badge inventory service."""
