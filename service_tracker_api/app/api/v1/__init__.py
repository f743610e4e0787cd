"""
Version 1 of the API.

This subpackage bundles the session, service record and audit
endpoints of the Service Tracker API.
"""
