"""
Top‑level package for the Service Tracker API.

This file makes ``service_tracker_api`` a Python package so that
modules within ``app`` can be imported using fully qualified names
like ``service_tracker_api.app.main``.  Without this marker file,
import resolution would fail when running tests outside of the
package root.

The package provides no public exports; all functionality lives in
submodules under ``app``.
"""

__all__ = []
