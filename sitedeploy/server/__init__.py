"""
HTTP surface (FastAPI)
"""

from sitedeploy.server.app import create_app, status_for

__all__ = ["create_app", "status_for"]
