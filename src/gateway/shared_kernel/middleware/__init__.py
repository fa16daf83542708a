"""Shared middleware for cross-cutting concerns.

This module contains HTTP middleware shared by every route of the
gateway, such as the permissive cross-origin policy.
"""
