"""Shared Kernel module.

Components every layer of the gateway depends on: the error taxonomy that
both transports map to client responses, and cross-cutting HTTP middleware.
"""
