"""Plan and apply resource configurations against the provider.

A configuration file is YAML:

    provider:
      tenant: abc1234
      domain: acme
      client_id: svc@cyberark.cloud.1234
    resources:
      - type: cyberark_safe
        name: vault
        attributes:
          safe_name: Vault
          member: admins
          member_type: group
          permission_level: full
    data:
      - type: cyberark_auth_token
        name: current

State is kept in a JSON file next to it, rewritten atomically after every
change so a failed apply keeps whatever already succeeded.
"""
from __future__ import annotations
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import ProviderSettings, load_settings
from .provider import CyberArkProvider, Diagnostics, Resource, State

logger = logging.getLogger(__name__)

STATE_VERSION = 1

CREATE = "create"
UPDATE = "update"
REPLACE = "replace"
DELETE = "delete"
NO_OP = "no-op"


class ConfigurationError(ValueError):
    """Raised when a configuration file cannot be used."""


@dataclass
class BlockConfig:
    """One `resources:` or `data:` entry."""
    type: str
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


@dataclass
class Configuration:
    provider: Dict[str, Any] = field(default_factory=dict)
    resources: List[BlockConfig] = field(default_factory=list)
    data: List[BlockConfig] = field(default_factory=list)

    def resource(self, address: str) -> Optional[BlockConfig]:
        return next((block for block in self.resources if block.address == address), None)


def _parse_blocks(raw: Any, section: str) -> List[BlockConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigurationError(f"'{section}' must be a list")

    blocks = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("type") or not item.get("name"):
            raise ConfigurationError(f"{section}[{index}] needs a 'type' and a 'name'")
        attributes = item.get("attributes") or {}
        if not isinstance(attributes, dict):
            raise ConfigurationError(f"{section}[{index}].attributes must be a mapping")
        blocks.append(BlockConfig(type=str(item["type"]), name=str(item["name"]), attributes=attributes))
    return blocks


def load_configuration(path: str | Path) -> Configuration:
    """Read and check the YAML configuration file.

    Raises:
        ConfigurationError: On unreadable YAML, a malformed block or a duplicate address
    """
    path = Path(path)
    try:
        document = yaml.safe_load(path.read_text()) or {}
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    provider = document.get("provider") or {}
    if not isinstance(provider, dict):
        raise ConfigurationError("'provider' must be a mapping")

    config = Configuration(
        provider=provider,
        resources=_parse_blocks(document.get("resources"), "resources"),
        data=_parse_blocks(document.get("data"), "data"),
    )

    seen = set()
    keys = [block.address for block in config.resources] + [f"data.{block.address}" for block in config.data]
    for key in keys:
        if key in seen:
            raise ConfigurationError(f"duplicate address {key}")
        seen.add(key)
    return config


class StateStore:
    """JSON state file: {"version", "serial", "resources": [...]}."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.serial = 0

    def load(self) -> Dict[str, Dict[str, Any]]:
        """Return state entries keyed by address, in file order."""
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"cannot read state file {self.path}: {exc}") from exc

        if document.get("version") != STATE_VERSION:
            raise ConfigurationError(
                f"unsupported state version {document.get('version')!r} in {self.path}"
            )
        self.serial = int(document.get("serial", 0))
        return {entry["address"]: entry for entry in document.get("resources", [])}

    def save(self, resources: Dict[str, Dict[str, Any]]) -> None:
        """Write the state atomically with owner-only permissions."""
        self.serial += 1
        document = {
            "version": STATE_VERSION,
            "serial": self.serial,
            "resources": list(resources.values()),
        }
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
        try:
            with os.fdopen(fd, "w") as handle:
                json.dump(document, handle, indent=2, sort_keys=False)
                handle.write("\n")
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Wrote state serial %s to %s", self.serial, self.path)


@dataclass
class PlannedChange:
    action: str
    address: str
    type: str
    before: Optional[State] = None
    after: Optional[State] = None
    changed: List[str] = field(default_factory=list)


def _state_entry(block_type: str, address: str, attributes: State) -> Dict[str, Any]:
    name = address.split(".", 1)[1]
    return {"address": address, "type": block_type, "name": name, "attributes": attributes}


class Engine:
    """Drives a provider through validate, plan, apply, destroy and import.

    Args:
        provider: Provider whose resources are managed
        config: Parsed configuration
        store: State file
        settings: Merged provider settings; loaded from config.provider and
            the environment when omitted
    """

    def __init__(
        self,
        provider: CyberArkProvider,
        config: Configuration,
        store: StateStore,
        settings: Optional[ProviderSettings] = None,
    ):
        self.provider = provider
        self.config = config
        self.store = store
        self._settings = settings
        self.state: Dict[str, Dict[str, Any]] = {}
        self._configured = False

    @property
    def settings(self) -> ProviderSettings:
        if self._settings is None:
            self._settings = load_settings(self.config.provider)
        return self._settings

    def _resource(self, block_type: str, diags: Diagnostics, address: str) -> Optional[Resource]:
        resource = self.provider.resource(block_type)
        if resource is None:
            diags.add_error("Invalid resource type", f'The provider does not support resource type "{block_type}".',
                            address)
        return resource

    # ------------------------------------------------------------------ validate

    def validate(self, diags: Diagnostics) -> None:
        try:
            provider_config = self.settings.provider_config()
        except ValueError as exc:
            diags.add_error("Invalid provider configuration", str(exc), "provider")
            return
        local = Diagnostics()
        self.provider.schema().validate(provider_config, local, "provider")
        if not local.has_error():
            self.provider.validate_config(provider_config, local)
        diags.extend(local)

        for block in self.config.resources:
            resource = self._resource(block.type, diags, block.address)
            if resource is None:
                continue
            local = Diagnostics()
            resource.schema().validate(block.attributes, local, block.address)
            if not local.has_error():
                resource.validate_config(block.attributes, local)
            diags.extend(local, block.address)

        for block in self.config.data:
            data_source = self.provider.data_source(block.type)
            address = f"data.{block.address}"
            if data_source is None:
                diags.add_error("Invalid data source", f'The provider does not support data source "{block.type}".',
                                address)
                continue
            data_source.schema().validate(block.attributes, diags, address)

    def configure(self, diags: Diagnostics) -> bool:
        if self._configured:
            return True
        self.validate(diags)
        if diags.has_error():
            return False
        self.provider.configure(self.settings.provider_config(), diags, self.settings)
        self._configured = not diags.has_error()
        return self._configured

    # ---------------------------------------------------------------------- plan

    def _refresh(self, diags: Diagnostics) -> None:
        for address, entry in list(self.state.items()):
            resource = self._resource(entry["type"], diags, address)
            if resource is None:
                return
            local = Diagnostics()
            refreshed = resource.read(dict(entry["attributes"]), local)
            diags.extend(local, address)
            if local.has_error():
                return
            if refreshed is None:
                logger.info("%s no longer exists remotely", address)
                del self.state[address]
            else:
                entry["attributes"] = refreshed

    @staticmethod
    def _diff(resource: Resource, planned: State, prior: State) -> tuple:
        changed, replace = [], False
        for name, attr in resource.schema().attributes.items():
            if not attr.configurable:
                continue
            value = planned.get(name)
            if value is None and attr.computed:
                continue
            if value != prior.get(name):
                changed.append(name)
                replace = replace or attr.requires_replace
        return changed, replace

    @staticmethod
    def _merge(resource: Resource, planned: State, prior: State) -> State:
        """Configured values over the prior state; computed values survive."""
        merged = dict(prior)
        for name, attr in resource.schema().attributes.items():
            value = planned.get(name)
            if attr.configurable and (value is not None or not attr.computed):
                merged[name] = value
        return merged

    def plan(self, diags: Diagnostics, refresh: bool = True) -> List[PlannedChange]:
        """Compare configuration with (refreshed) state.

        Returns:
            Changes in configuration order, then deletions of resources no
            longer configured, newest first
        """
        if not self.configure(diags):
            return []
        self.state = self.store.load()
        if refresh:
            self._refresh(diags)
            if diags.has_error():
                return []

        changes = []
        for block in self.config.resources:
            resource = self._resource(block.type, diags, block.address)
            if resource is None:
                return []
            planned = resource.schema().apply_defaults(block.attributes)
            entry = self.state.get(block.address)
            if entry is None:
                changes.append(PlannedChange(CREATE, block.address, block.type, after=planned))
                continue
            prior = entry["attributes"]
            changed, replace = self._diff(resource, planned, prior)
            if not changed:
                changes.append(PlannedChange(NO_OP, block.address, block.type, before=prior, after=prior))
            else:
                action = REPLACE if replace else UPDATE
                after = planned if replace else self._merge(resource, planned, prior)
                changes.append(PlannedChange(action, block.address, block.type, prior, after, changed))

        configured = {block.address for block in self.config.resources}
        for address in reversed(list(self.state)):
            if address not in configured:
                entry = self.state[address]
                changes.append(PlannedChange(DELETE, address, entry["type"], before=entry["attributes"]))
        return changes

    # --------------------------------------------------------------------- apply

    def _delete(self, change: PlannedChange, resource: Resource, diags: Diagnostics) -> bool:
        local = Diagnostics()
        resource.delete(dict(change.before or {}), local)
        diags.extend(local, change.address)
        if local.has_error():
            return False
        self.state.pop(change.address, None)
        return True

    def _apply_change(self, change: PlannedChange, diags: Diagnostics) -> bool:
        resource = self._resource(change.type, diags, change.address)
        if resource is None:
            return False

        if change.action == DELETE:
            return self._delete(change, resource, diags)
        if change.action == REPLACE and not self._delete(change, resource, diags):
            return False

        local = Diagnostics()
        if change.action == UPDATE:
            new_state = resource.update(dict(change.after), dict(change.before), local)
        else:
            new_state = resource.create(dict(change.after), local)
        diags.extend(local, change.address)
        if local.has_error() or new_state is None:
            return False
        self.state[change.address] = _state_entry(change.type, change.address, new_state)
        return True

    def apply(self, diags: Diagnostics, changes: Optional[List[PlannedChange]] = None) -> List[PlannedChange]:
        """Apply a plan, computing one when none is given.

        Stops at the first failing change. State is saved after every
        successful change.

        Returns:
            The changes that were applied
        """
        if changes is None:
            changes = self.plan(diags)
        if diags.has_error():
            return []

        applied = []
        for change in changes:
            if change.action == NO_OP:
                continue
            if not self._apply_change(change, diags):
                logger.error("Apply stopped at %s", change.address)
                break
            applied.append(change)
            self.store.save(self.state)
            logger.info("%s: %s complete", change.address, change.action)
        return applied

    def destroy(self, diags: Diagnostics) -> List[PlannedChange]:
        """Delete every resource in state, newest first."""
        if not self.configure(diags):
            return []
        self.state = self.store.load()
        changes = [
            PlannedChange(DELETE, address, entry["type"], before=entry["attributes"])
            for address, entry in reversed(list(self.state.items()))
        ]
        return self.apply(diags, changes)

    def import_resource(self, address: str, import_id: str, diags: Diagnostics) -> Optional[State]:
        """Bring an existing remote object under management at `address`."""
        block = self.config.resource(address)
        if block is None:
            diags.add_error("Configuration for import target does not exist",
                            f"No resource at {address} in the configuration.", address)
            return None
        if not self.configure(diags):
            return None
        self.state = self.store.load()
        if address in self.state:
            diags.add_error("Resource already managed", f"{address} is already in the state.", address)
            return None

        resource = self._resource(block.type, diags, address)
        if resource is None:
            return None
        local = Diagnostics()
        imported = resource.import_state(import_id, local)
        if imported is not None and not local.has_error():
            imported = resource.read(imported, local)
        diags.extend(local, address)
        if local.has_error() or imported is None:
            return None

        self.state[address] = _state_entry(block.type, address, imported)
        self.store.save(self.state)
        return imported

    def read_data_sources(self, diags: Diagnostics) -> Dict[str, State]:
        """Read every configured data source."""
        if not self.configure(diags):
            return {}
        results = {}
        for block in self.config.data:
            data_source = self.provider.data_source(block.type)
            address = f"data.{block.address}"
            local = Diagnostics()
            values = data_source.read(dict(block.attributes), local)
            diags.extend(local, address)
            if values is not None:
                results[address] = values
        return results

    def close(self) -> None:
        self.provider.close()
        self._configured = False
