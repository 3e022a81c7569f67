"""
GraphQL documents used by the bulk operation service.
"""

from .bulk import *  # noqa: F403
