"""
FastAPI routers for certifications and blueprint entities
"""
