"""
FastAPI routers for the company import service, one module per concern.
"""
