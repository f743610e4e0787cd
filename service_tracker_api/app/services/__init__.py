"""
Service layer abstraction.

Each service encapsulates business logic for one concern: creating
and authorizing service records, detecting duplicate titles, grouping
records by month and selecting the view for a session.  Services talk
to the record store only through :mod:`..core.store`, so the backing
database can be swapped without changing API handlers.
"""
