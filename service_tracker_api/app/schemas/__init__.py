"""
Pydantic schema definitions for API payloads.

Service records, monthly groups and session views each define their
own request and response models.  Schemas are separated from the record
store rows to decouple the API representation from persistence.
"""
