"""Migration rules, one module per resource type."""

from .base import STATE_TYPE_KEY, MigrationRule, TransformResult
from .access_group import AccessGroupRule
from .access_policy import AccessPolicyRule
from .argo import ArgoRule
from .dns_record import DnsRecordRule
from .healthcheck import HealthcheckRule
from .logpush_job import LogpushJobRule
from .workers_kv_namespace import WorkersKvNamespaceRule

__all__ = [
    # Contract
    "MigrationRule",
    "STATE_TYPE_KEY",
    "TransformResult",
    # Rules
    "AccessGroupRule",
    "AccessPolicyRule",
    "ArgoRule",
    "DnsRecordRule",
    "HealthcheckRule",
    "LogpushJobRule",
    "WorkersKvNamespaceRule",
]
