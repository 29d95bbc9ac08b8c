"""Data store clients."""

from cm_core_lib.clients.base import BaseDataStoreClient
from cm_core_lib.clients.case_store_client import CaseStoreClient

__all__ = [
    "BaseDataStoreClient",
    "CaseStoreClient",
]
