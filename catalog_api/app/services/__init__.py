"""
Service layer.

Each domain service composes a generic ``CrudService`` with its own
operations and reports every outcome as a ``Result`` envelope, so API
handlers never deal with raw store exceptions.
"""
