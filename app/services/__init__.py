"""Clients and services backing the suggestion API."""
