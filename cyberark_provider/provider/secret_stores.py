"""Secrets Hub secret store resources for AWS, Azure and Google Cloud."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from ..core.cyberark import AWS_ASM, AZURE_AKV, GCP_GSM, CyberArkError
from ..core.cyberark.models import (
    AwsAsmData,
    AzureAkvData,
    Connector,
    GcpGsmData,
    SecretStoreInput,
    SecretStoreOutput,
)
from ..core.cyberark.validators import validate_gcp_store
from .diagnostics import Diagnostics
from .resource import Resource, State, now_rfc3339
from .schema import Attribute, Schema

logger = logging.getLogger(__name__)


class SecretStoreResource(Resource):
    """Shared lifecycle for secret store resources.

    ``fields`` maps resource attributes to the store data model fields.
    ``match_attribute`` is compared, with the name, when adopting a store
    that already exists in Secrets Hub.
    """

    store_type = ""
    label = ""
    data_model: Any = None
    fields: Dict[str, str] = {}
    match_attribute = ""
    sensitive_attributes: tuple = ()
    description = ""

    def schema(self) -> Schema:
        attributes = {
            "id": Attribute(computed=True, description="Secret store ID generated by Secrets Hub."),
            "last_updated": Attribute(computed=True),
            "name": Attribute(required=True, description="Secret store name."),
            "description": Attribute(required=True, description="Secret store description."),
            "type": Attribute(computed=True, default=self.store_type),
        }
        for attr_name in self.fields:
            attributes[attr_name] = Attribute(required=True, sensitive=attr_name in self.sensitive_attributes)
        return Schema(description=self.description, attributes=attributes)

    def _data(self, plan: State, for_update: bool = False):
        return self.data_model(**{field: plan.get(attr) for attr, field in self.fields.items()})

    def _state_from_data(self, data: Any, prior: State) -> State:
        if data is None:
            return {attr: prior.get(attr) for attr in self.fields}
        return {attr: getattr(data, field) for attr, field in self.fields.items()}

    def _store_input(self, plan: State, for_update: bool = False) -> SecretStoreInput:
        return SecretStoreInput(
            name=plan.get("name"),
            description=plan.get("description"),
            type=plan.get("type") or self.store_type,
            data=self._data(plan, for_update),
        )

    def _matches(self, store: SecretStoreOutput, plan: State) -> bool:
        if store.name != plan.get("name") or store.data is None:
            return False
        field = self.fields[self.match_attribute]
        return getattr(store.data, field, None) == plan.get(self.match_attribute)

    def create(self, plan: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        hub = self.api.secrets_hub

        try:
            stores = hub.list_secret_stores(self.store_type)
        except CyberArkError as exc:
            diags.add_error("Error reading secret stores", f"Error while reading secret stores: {exc}")
            return None

        state = dict(plan)
        state["type"] = plan.get("type") or self.store_type
        for store in stores.secret_stores:
            if self._matches(store, plan):
                logger.info(
                    "Secret store with name %s and %s %s already exists",
                    plan.get("name"), self.match_attribute, plan.get(self.match_attribute),
                )
                state["id"] = store.id
                state["last_updated"] = store.updated_at or now_rfc3339()
                return state

        try:
            created = hub.add_secret_store(self._store_input(plan))
        except CyberArkError as exc:
            diags.add_error("Error creating secret store", f"Error while creating secret store: {exc}")
            return None

        logger.info("Secret Store created successfully")
        state["id"] = created.id
        state["last_updated"] = created.updated_at or now_rfc3339()
        return state

    def read(self, state: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        try:
            store = self.api.secrets_hub.get_secret_store(state.get("id"))
        except CyberArkError as exc:
            diags.add_error("Error reading secret store", f"Error while reading secret store: {exc}")
            return None

        new_state = {
            "id": store.id,
            "name": store.name,
            "description": store.description,
            "type": store.type,
            "last_updated": store.updated_at,
        }
        new_state.update(self._state_from_data(store.data, state))
        return new_state

    def check_update(self, plan: State, state: State, diags: Diagnostics) -> None:
        """Reject attribute changes Secrets Hub cannot apply in place."""

    def update(self, plan: State, state: State, diags: Diagnostics) -> Optional[State]:
        if not self._require_api(diags):
            return None
        self.check_update(plan, state, diags)
        if diags.has_error():
            return None

        try:
            updated = self.api.secrets_hub.update_secret_store(
                state.get("id"),
                self._store_input(plan, for_update=True),
            )
        except CyberArkError as exc:
            diags.add_error("Error updating secret store", f"Error while updating secret store: {exc}")
            return None

        new_state = dict(plan)
        new_state["type"] = plan.get("type") or self.store_type
        new_state["id"] = updated.id or state.get("id")
        new_state["last_updated"] = updated.updated_at or now_rfc3339()
        logger.info("%s Secret Store updated successfully", self.label)
        return new_state

    def delete(self, state: State, diags: Diagnostics) -> None:
        if not self._require_api(diags):
            return
        try:
            self.api.secrets_hub.delete_secret_store(state.get("id"))
        except CyberArkError as exc:
            diags.add_error(f"Error deleting {self.label} secret store", f"Error while deleting secret store: {exc}")
            return
        logger.info("%s Secret Store %s deleted successfully", self.label, state.get("id"))


class AWSSecretStoreResource(SecretStoreResource):
    type_name = "aws_secret_store"
    store_type = AWS_ASM
    label = "AWS"
    data_model = AwsAsmData
    fields = {
        "aws_account_alias": "account_alias",
        "aws_account_id": "account_id",
        "aws_account_region": "region_id",
        "aws_iam_role": "role_name",
    }
    match_attribute = "aws_account_alias"
    description = "AWS Secrets Manager target registered in Secrets Hub."


class AzureSecretStoreResource(SecretStoreResource):
    type_name = "azure_secret_store"
    store_type = AZURE_AKV
    label = "Azure"
    data_model = AzureAkvData
    fields = {
        "azure_app_client_directory_id": "app_client_directory_id",
        "azure_vault_url": "azure_vault_url",
        "azure_app_client_id": "app_client_id",
        "azure_app_client_secret": "app_client_secret",
        "subscription_id": "subscription_id",
        "subscription_name": "subscription_name",
        "resource_group_name": "resource_group_name",
    }
    connector_fields = {
        "connection_type": "connection_type",
        "connector_id": "connector_id",
    }
    match_attribute = "azure_app_client_id"
    sensitive_attributes = ("azure_app_client_secret",)
    description = "Azure Key Vault target registered in Secrets Hub."

    def schema(self) -> Schema:
        schema = super().schema()
        for attr_name in self.connector_fields:
            schema.attributes[attr_name] = Attribute(required=True)
        return schema

    def _data(self, plan: State, for_update: bool = False) -> AzureAkvData:
        data = super()._data(plan, for_update)
        data.connection_config = Connector(
            **{field: plan.get(attr) for attr, field in self.connector_fields.items()}
        )
        return data

    def _state_from_data(self, data: Any, prior: State) -> State:
        values = super()._state_from_data(data, prior)
        connector = data.connection_config if data is not None else None
        for attr, field in self.connector_fields.items():
            values[attr] = getattr(connector, field) if connector is not None else prior.get(attr)
        # Secrets Hub does not echo the client secret back
        if not values.get("azure_app_client_secret"):
            values["azure_app_client_secret"] = prior.get("azure_app_client_secret")
        return values


class GCPSecretStoreResource(SecretStoreResource):
    type_name = "gcp_secret_store"
    store_type = GCP_GSM
    label = "GCP"
    data_model = GcpGsmData
    fields = {
        "gcp_project_name": "gcp_project_name",
        "gcp_project_number": "gcp_project_number",
        "gcp_workload_identity_pool_id": "gcp_workload_identity_pool_id",
        "gcp_pool_provider_id": "gcp_pool_provider_id",
        "service_account_email": "service_account_email",
    }
    match_attribute = "gcp_project_name"
    description = "Google Secret Manager target registered in Secrets Hub."

    def validate_config(self, config: State, diags: Diagnostics) -> None:
        for message in validate_gcp_store(config):
            diags.add_error("Validation Error", message)

    def check_update(self, plan: State, state: State, diags: Diagnostics) -> None:
        if plan.get("gcp_project_number") != state.get("gcp_project_number"):
            diags.add_error("Invalid Update", "GCP Project Number cannot be changed.")

    def _data(self, plan: State, for_update: bool = False) -> GcpGsmData:
        data = super()._data(plan, for_update)
        if for_update:
            data.gcp_project_number = None
        return data

    def _store_input(self, plan: State, for_update: bool = False) -> SecretStoreInput:
        store = super()._store_input(plan, for_update)
        if for_update:
            store.type = None
        return store
