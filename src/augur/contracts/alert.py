# src/augur/contracts/alert.py
"""Alert and alert template shapes consumed from the persistence layer.

Two stored shapes exist:

- Plan alerts carry a template with a structured node list (possibly
  empty) plus template properties plugged into ${...} placeholders.
- Legacy alerts carry no template, only flat 'properties' describing one
  monolithic detection pipeline.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from augur.contracts.plan import PlanNodeDefinition, parse_plan_nodes


class AlertTemplate(BaseModel):
    """Reusable detection plan with default property values."""

    model_config = {"frozen": True}

    name: str | None = None
    nodes: tuple[PlanNodeDefinition, ...] = ()
    properties: dict[str, Any] = Field(
        default_factory=dict,
        description="Default values for ${...} placeholders in node params",
    )

    @field_validator("nodes", mode="before")
    @classmethod
    def parse_nodes(cls, v: Any) -> Any:
        return parse_plan_nodes(v)


class Alert(BaseModel):
    """An alert as loaded from persistence."""

    model_config = {"frozen": True, "populate_by_name": True}

    id: int | str | None = None
    name: str = "unnamed-alert"
    template: AlertTemplate | None = None
    template_properties: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("template_properties", "templateProperties"),
    )
    properties: dict[str, Any] = Field(
        default_factory=dict,
        description="Flat legacy pipeline configuration (used only without a template)",
    )


def is_plan_alert(alert: Alert) -> bool:
    """Decide once which execution path an alert takes.

    A template with a node list (even an empty one) selects the plan path;
    anything else is the legacy flat shape.
    """
    return alert.template is not None
