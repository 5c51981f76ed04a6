"""
Database layer: engine/session, ORM models, pydantic schemas, CRUD helpers
"""
