import json
from decimal import Decimal
from typing import Optional, Protocol

from pydantic import BaseModel, Field, ValidationError

from src.core.money_requests.models import RoutingPolicy


class OrgDirectory(Protocol):
    def manager_of(self, employee_id: str) -> Optional[str]: ...

    def ceo_for(self, employee_id: str) -> Optional[str]: ...

    def finance_approver_for(self, employee_id: str) -> Optional[str]: ...

    def can_disburse(self, actor_id: str) -> bool: ...


class OrgDirectoryDefinition(BaseModel):
    ceo: Optional[str] = Field(default=None, description="CEO identity.", examples=["emp_ceo"])
    finance_approver: Optional[str] = Field(
        default=None,
        description="Default finance approver identity.",
        examples=["emp_fin"],
    )
    managers: dict[str, str] = Field(
        default_factory=dict,
        description="Employee identity to manager identity.",
        examples=[{"emp_001": "emp_mgr"}],
    )
    finance_approvers: dict[str, str] = Field(
        default_factory=dict,
        description="Per-employee finance approver overrides.",
        examples=[{"emp_002": "emp_fin_2"}],
    )
    disbursers: list[str] = Field(
        default_factory=list,
        description="Identities holding the finance/disbursement role.",
        examples=[["emp_fin"]],
    )


class StaticOrgDirectory:
    """Org chart lookups backed by a static definition."""

    def __init__(self, definition: Optional[OrgDirectoryDefinition] = None) -> None:
        self._definition = definition or OrgDirectoryDefinition()

    @property
    def definition(self) -> OrgDirectoryDefinition:
        return self._definition

    def manager_of(self, employee_id: str) -> Optional[str]:
        return self._definition.managers.get(employee_id)

    def ceo_for(self, employee_id: str) -> Optional[str]:
        return self._definition.ceo

    def finance_approver_for(self, employee_id: str) -> Optional[str]:
        return self._definition.finance_approvers.get(
            employee_id, self._definition.finance_approver
        )

    def can_disburse(self, actor_id: str) -> bool:
        return actor_id in self._definition.disbursers


def parse_org_directory(directory_json: Optional[str]) -> StaticOrgDirectory:
    normalized_json = (directory_json or "").strip()
    if not normalized_json:
        return StaticOrgDirectory()
    try:
        raw = json.loads(normalized_json)
    except json.JSONDecodeError:
        return StaticOrgDirectory()
    if not isinstance(raw, dict):
        return StaticOrgDirectory()
    try:
        definition = OrgDirectoryDefinition.model_validate(raw)
    except ValidationError:
        return StaticOrgDirectory()
    return StaticOrgDirectory(definition)


def build_routing_policy(*, directory: OrgDirectory, approval_threshold: Decimal) -> RoutingPolicy:
    return RoutingPolicy(
        approval_threshold=approval_threshold,
        manager_resolver=directory.manager_of,
        ceo_resolver=directory.ceo_for,
        finance_approver_resolver=directory.finance_approver_for,
        disbursement_authorizer=directory.can_disburse,
    )
