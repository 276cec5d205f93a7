"""
Package marker for the entity-rest library.
It groups the persistence layer (repository, filters, store driver) and the REST layer (controller, routing, app).
Most functionality lives in the sibling packages; this file intentionally stays lightweight.
"""
