"""
Pydantic schema definitions.

Document schemas describe what is persisted; request and read schemas
describe API payloads.  Keeping them apart means a stored field such as
the password hash can never leak into a response by accident.
"""
