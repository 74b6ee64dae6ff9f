"""
API Workspace - a local-first manager for collections of HTTP requests.
"""

__version__ = "1.0.0"
