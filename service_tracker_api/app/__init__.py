"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Configuration, logging, identity verification and the
record store live in ``core``; business rules (creation, duplicate
detection, monthly aggregation, admin authorization) live in
``services``; request and response bodies live in ``schemas``; HTTP
routes are grouped by version under ``api/<version>/``.
"""

from .main import app  # noqa: F401
