"""AWS, Azure and database account resources (Privilege Cloud and PVWA)."""
from __future__ import annotations
import logging
from typing import Dict, Optional, Tuple

from ..core.cyberark import CyberArkError, ResourceAlreadyExistsError
from ..core.cyberark.models import AccountProps, Credential, CredentialResponse, SecretManagement
from .diagnostics import Diagnostics
from .resource import Resource, State, rfc3339_from_micros
from .schema import BOOL, Attribute, Schema

logger = logging.getLogger(__name__)


def _common_attributes(secret_type: str, address_required: bool) -> Dict[str, Attribute]:
    return {
        "id": Attribute(computed=True, description="Credential ID generated by CyberArk after onboarding."),
        "last_updated": Attribute(computed=True),
        "name": Attribute(required=True, description="Custom account name for the object in the safe."),
        "address": Attribute(
            required=address_required,
            optional=not address_required,
            description="URI, URL or IP associated with the credential.",
        ),
        "username": Attribute(required=True, description="Username of the credential object."),
        "platform": Attribute(required=True, description="Management platform of the credential."),
        "safe": Attribute(
            required=True,
            requires_replace=True,
            description="Target safe where the credential is onboarded. Changing it recreates the account.",
        ),
        "secret_type": Attribute(computed=True, default=secret_type),
        "secret": Attribute(required=True, sensitive=True, description="Secret value of the credential object."),
        "secret_name_in_secret_store": Attribute(optional=True),
        "sm_manage": Attribute(type=BOOL, optional=True, description="Automatic management of the credential."),
        "sm_manage_reason": Attribute(optional=True, description="Why the credential is not managed."),
    }


class AccountResource(Resource):
    """Shared lifecycle for every account resource.

    Subclasses declare the platform properties as a mapping of resource
    attribute -> (AccountProps field, required). Properties listed in
    ``immutable_props`` are sent on create only.
    """

    label = "Account"
    secret_type = "password"
    address_required = False
    props: Dict[str, Tuple[str, bool]] = {}
    immutable_props: Tuple[str, ...] = ()
    description = ""

    def schema(self) -> Schema:
        attributes = _common_attributes(self.secret_type, self.address_required)
        for attr_name, (_, required) in self.props.items():
            attributes[attr_name] = Attribute(required=required, optional=not required)
        return Schema(description=self.description, attributes=attributes)

    def _credential(self, plan: State, for_update: bool = False) -> Credential:
        props = {"secret_name_in_secret_store": plan.get("secret_name_in_secret_store")}
        for attr_name, (field_name, _) in self.props.items():
            if for_update and attr_name in self.immutable_props:
                continue
            props[field_name] = plan.get(attr_name)

        credential = Credential(
            name=plan.get("name"),
            address=plan.get("address"),
            user_name=plan.get("username"),
            platform_id=plan.get("platform"),
            safe_name=plan.get("safe"),
            platform_account_properties=AccountProps(**props),
            secret_management=SecretManagement(
                automatic_management_enabled=plan.get("sm_manage"),
                manual_management_reason=plan.get("sm_manage_reason"),
            ),
        )
        # secret and secret type cannot change once onboarded
        if not for_update:
            credential.secret_type = plan.get("secret_type") or self.secret_type
            credential.secret = plan.get("secret")
        return credential

    def _state_from_account(self, account: CredentialResponse, prior: State) -> State:
        props = account.platform_account_properties or AccountProps()
        mgmt = account.secret_management or SecretManagement()
        state = {
            "id": account.id,
            "name": account.name,
            "address": account.address,
            "username": account.user_name,
            "platform": account.platform_id,
            "safe": account.safe_name,
            "secret_type": account.secret_type or prior.get("secret_type") or self.secret_type,
            # the API never returns the secret
            "secret": prior.get("secret"),
            "secret_name_in_secret_store": props.secret_name_in_secret_store,
            "sm_manage": mgmt.automatic_management_enabled,
            "sm_manage_reason": mgmt.manual_management_reason,
            "last_updated": rfc3339_from_micros(mgmt.last_modified_time),
        }
        for attr_name, (field_name, _) in self.props.items():
            state[attr_name] = getattr(props, field_name)
        return state

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        pam = self._pam_service(diags)
        if pam is None:
            return None

        try:
            search = pam.filter_accounts("", [f"safeName eq {plan.get('safe')}"])
        except CyberArkError as exc:
            diags.add_error("Error searching for account", f"Error searching for account: {exc}")
            return None

        if any(account.name == plan.get("name") for account in search.value):
            diags.add_error("Error creating account", "Account already exist")
            return None

        logger.info("Account not found, creating new")
        try:
            account = pam.add_account(self._credential(plan))
        except ResourceAlreadyExistsError as exc:
            logger.info("Account [%s] lost a creation race: %s", plan.get("name"), exc)
            diags.add_error("Error creating account", "Account already exist")
            return None
        except CyberArkError as exc:
            diags.add_error("Error creating account", f"Error creating account: {exc}")
            return None

        state = dict(plan)
        state["id"] = account.id
        state["secret_type"] = plan.get("secret_type") or self.secret_type
        mgmt = account.secret_management
        state["last_updated"] = rfc3339_from_micros(mgmt.last_modified_time if mgmt else None)
        return state

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        pam = self._pam_service(diags)
        if pam is None:
            return None
        try:
            account = pam.get_account(state.get("id"))
        except CyberArkError as exc:
            diags.add_error("Error reading account", f"Error reading account from API: {exc}")
            return None
        return self._state_from_account(account, state)

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        pam = self._pam_service(diags)
        if pam is None:
            return None
        try:
            account = pam.update_account(state.get("id"), self._credential(plan, for_update=True))
        except (CyberArkError, ValueError) as exc:
            diags.add_error("Error updating account", f"Error updating account: {exc}")
            return None

        new_state = dict(plan)
        new_state["id"] = account.id
        new_state["secret_type"] = state.get("secret_type") or self.secret_type
        mgmt = account.secret_management
        new_state["last_updated"] = rfc3339_from_micros(mgmt.last_modified_time if mgmt else None)
        logger.info("%s updated successfully", self.label)
        return new_state

    def delete(self, state: State, diags: Diagnostics) -> None:
        pam = self._pam_service(diags)
        if pam is None:
            return
        try:
            pam.delete_account(state.get("id"))
        except CyberArkError as exc:
            diags.add_error("Error deleting account", f"Error deleting account: {exc}")
            return
        logger.info("%s with ID %s deleted successfully", self.label, state.get("id"))


_AWS_PROPS = {
    "aws_kid": ("aws_access_key_id", True),
    "aws_account_id": ("aws_account_id", True),
    "aws_alias": ("aws_account_alias", False),
    "aws_account_region": ("region", False),
}

_AZURE_PROPS = {
    "ms_app_id": ("application_id", True),
    "ms_app_obj_id": ("application_object_id", True),
    "ms_key_id": ("key_id", True),
    "ms_ad_id": ("active_directory_id", False),
    "ms_duration": ("duration", False),
    "ms_pop": ("populate_if_not_exist", False),
    "ms_key_desc": ("key_description", False),
}

_DB_PROPS = {
    "db_port": ("port", False),
    "dbname": ("database", False),
    "db_dsn": ("dsn", False),
}


class AWSAccountResource(AccountResource):
    type_name = "aws_account"
    label = "AWS Account"
    secret_type = "key"
    props = _AWS_PROPS
    immutable_props = ("aws_account_region",)
    description = "Privileged AWS access key account onboarded into a Privilege Cloud safe."


class AzureAccountResource(AccountResource):
    type_name = "azure_account"
    label = "Azure Account"
    props = _AZURE_PROPS
    description = "Azure application secret account onboarded into a Privilege Cloud safe."


class DBAccountResource(AccountResource):
    type_name = "db_account"
    label = "Database Account"
    address_required = True
    props = _DB_PROPS
    description = "Database account onboarded into a Privilege Cloud safe."


class PVWAAWSAccountResource(AWSAccountResource):
    type_name = "pvwa_aws_account"
    use_pvwa = True
    description = "Privileged AWS access key account onboarded through a self-hosted PVWA."


class PVWAAzureAccountResource(AzureAccountResource):
    type_name = "pvwa_azure_account"
    use_pvwa = True
    description = "Azure application secret account onboarded through a self-hosted PVWA."


class PVWADBAccountResource(DBAccountResource):
    type_name = "pvwa_db_account"
    use_pvwa = True
    description = "Database account onboarded through a self-hosted PVWA."
