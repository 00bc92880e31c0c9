"""Input validation helpers for resource attributes."""
from __future__ import annotations
import re
from typing import Optional

# (field, min length, max length, pattern) for Google Secret Manager stores
GCP_STORE_RULES = (
    ("name", 1, 200, r"""^[a-zA-Z0-9!"#$%&'()*+,-./:;<=>?@[\]^_`{|}~]+$"""),
    ("description", 1, 150, r"^[A-Za-z0-9-_,.();: ]+$"),
    ("gcp_project_name", 4, 30, r"""^[a-zA-Z0-9'"! -]+$"""),
    ("gcp_project_number", 1, 18, r"^[0-9]+$"),
    ("gcp_workload_identity_pool_id", 4, 32, r"^[a-z0-9-]+$"),
    ("gcp_pool_provider_id", 4, 32, r"^[a-z0-9-]+$"),
    ("service_account_email", 37, 86, r"^[a-z0-9-]{6,30}@[a-z0-9-]{6,30}\.iam\.gserviceaccount\.com$"),
)


def validate_input_field(name: str, value: Optional[str], min_len: int, max_len: int, pattern: str) -> None:
    """Check a string attribute against length bounds and a regex.

    Unset values (None) are accepted.

    Raises:
        ValueError: If the value is not a string or is out of bounds, if the
            pattern is invalid, or if the value does not match
    """
    if value is None:
        return
    if not isinstance(value, str):
        raise ValueError(f'field "{name}" must be a string; got {type(value).__name__}')

    if len(value) < min_len or len(value) > max_len:
        raise ValueError(
            f'field "{name}" must be between {min_len} and {max_len} characters; got {len(value)}'
        )

    try:
        matched = re.search(pattern, value)
    except re.error as exc:
        raise ValueError(f'regex pattern error for "{name}": {exc}') from exc

    if not matched:
        raise ValueError(f'field "{name}" must match the pattern "{pattern}"; got: {value}')


def validate_gcp_store(values: dict) -> list[str]:
    """Validate the GCP secret store attributes.

    Returns:
        One error message per failing attribute
    """
    errors = []
    for name, min_len, max_len, pattern in GCP_STORE_RULES:
        try:
            validate_input_field(name, values.get(name), min_len, max_len, pattern)
        except ValueError as exc:
            errors.append(str(exc))
    return errors
