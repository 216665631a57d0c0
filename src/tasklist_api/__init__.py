"""
Task list service.

A small persistent to-do API: the repository in ``tasklist_api.repositories``
owns the task collection stored in a crash-safe JSON document, and
``tasklist_api.main`` exposes it over HTTP with FastAPI.
"""

__version__ = "0.1.0"
