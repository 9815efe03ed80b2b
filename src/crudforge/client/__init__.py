"""Collaborator interfaces and their HTTP implementations."""

from crudforge.client.http import BearerSession, HttpDataService, HttpMetadataService
from crudforge.client.protocols import AuthenticatedCall, DataService, MetadataService

__all__ = [
    "AuthenticatedCall",
    "BearerSession",
    "DataService",
    "HttpDataService",
    "HttpMetadataService",
    "MetadataService",
]
