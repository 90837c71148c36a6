"""Shared request-scoped values for cross-cutting concerns.

This module holds the resolved tenant context that tenant-scoped routes in
every bounded context receive, and the probe that observes its resolution.
"""
