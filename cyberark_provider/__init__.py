"""CyberArk provider package.

Manages Privilege Cloud accounts and safes and Secrets Hub secret stores and
sync policies through a declarative resource lifecycle.

To drive it from the command line:
    cyberark-provider --config main.yaml plan

To use the API clients directly:
    from cyberark_provider.core.cyberark import IdentityAuthAPI, new_pam_api
"""

__version__ = "0.4.0"
