"""Resource lifecycle layer on top of the CyberArk API client.

- diagnostics.py: Error and warning collection
- schema.py: Attribute schemas, validation and defaults
- resource.py: Resource and data source base classes
- accounts.py, safes.py: PAM resources (Privilege Cloud and PVWA)
- secret_stores.py, secret_store_state.py, sync_policy.py: Secrets Hub resources
- data_sources.py: Auth token data source
- provider.py: Provider configuration and registry
"""
from .diagnostics import ERROR, WARNING, Diagnostic, Diagnostics
from .provider import CyberArkProvider, DATA_SOURCE_TYPES, RESOURCE_TYPES
from .resource import DataSource, Resource, State
from .schema import Attribute, Schema

__all__ = [
    "ERROR",
    "WARNING",
    "Diagnostic",
    "Diagnostics",
    "CyberArkProvider",
    "DATA_SOURCE_TYPES",
    "RESOURCE_TYPES",
    "DataSource",
    "Resource",
    "State",
    "Attribute",
    "Schema",
]
