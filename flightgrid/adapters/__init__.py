"""
Adapters layer - External integrations (GraphQL API, mock data).
"""

from .graphql_client import GraphQLClient
from .mock_backend import MockBackend

__all__ = ["GraphQLClient", "MockBackend"]
