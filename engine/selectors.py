"""Access condition selector tables shared by config expansion and state contraction.

A condition (``include``, ``exclude``, ``require``) is a list of objects whose
keys name a selector kind. v4 packs many values under one key; v5 wants one
object per value. These tables describe how each kind is unpacked.
"""

from collections import OrderedDict
from typing import NamedTuple, Optional

CONDITION_ATTRIBUTES = ("include", "exclude", "require")

# Selectors that were booleans in v4 and are empty objects in v5.
BOOLEAN_SELECTORS = ("everyone", "certificate", "any_valid_service_token")

# Array selectors and the name of the field each value is wrapped under.
# Order matches the order state contraction emits them in.
ARRAY_SELECTORS = OrderedDict(
    [
        ("email", "email"),
        ("email_list", "id"),
        ("ip_list", "id"),
        ("ip", "ip"),
        ("group", "id"),
        ("login_method", "id"),
        ("email_domain", "domain"),
        ("geo", "country_code"),
        ("device_posture", "integration_uid"),
        ("service_token", "token_id"),
        ("common_name", "common_name"),
        ("auth_method", "auth_method"),
    ]
)

# Extra array that spills over into common_name selectors.
OVERFLOW_SELECTORS = {"common_names": ("common_name", "common_name")}


class CompoundSelector(NamedTuple):
    """A nested-object selector.

    Attributes:
        target: Selector name in v5
        array_field: Field holding many values in v4, or None
        value_field: Field each value is stored under in v5
        first_only: Keep only the first value instead of one object per value
    """

    target: str
    array_field: Optional[str] = None
    value_field: Optional[str] = None
    first_only: bool = False


COMPOUND_SELECTORS = OrderedDict(
    [
        ("github", CompoundSelector("github_organization", "teams", "team")),
        ("gsuite", CompoundSelector("gsuite", "email", "email", first_only=True)),
        ("azure", CompoundSelector("azure_ad", "id", "id", first_only=True)),
        ("okta", CompoundSelector("okta", "name", "name", first_only=True)),
        ("saml", CompoundSelector("saml")),
        ("external_evaluation", CompoundSelector("external_evaluation")),
        ("auth_context", CompoundSelector("auth_context")),
    ]
)

# Leading keys of compound objects, in the order they are written.
COMPOUND_KEY_ORDER = ("name", "team", "email", "id", "identity_provider_id")
