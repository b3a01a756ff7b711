"""
HTTP API: application factory and resource routers.
"""
