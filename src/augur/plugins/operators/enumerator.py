"""Enumerator operator: produces the variant list that drives fan-out.

Params (exactly one of):
    values: list of scalars; item i overrides {"value": values[i]}
    items: list of mappings; item i overrides the mapping itself (an
        item shaped {"params": {...}} contributes its inner mapping)

Either list may come from alert template properties, e.g.
values: "${countries}". Dependent nodes read a variant with
<enumerator_name.key> placeholders in their params.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import model_validator

from augur.contracts import EnumerationItem, OperatorContext
from augur.plugins.base import BaseOperator, OperatorConfig

OUTPUT_KEY = "enumeration_items"


class EnumeratorConfig(OperatorConfig):
    values: list[Any] | None = None
    items: list[dict[str, Any]] | None = None

    @model_validator(mode="after")
    def validate_exactly_one_source(self) -> "EnumeratorConfig":
        if (self.values is None) == (self.items is None):
            raise ValueError("Enumerator requires exactly one of 'values' or 'items'")
        return self


class Enumerator(BaseOperator):
    """Compute the ordered list of EnumerationItem for this run."""

    type_tag = "Enumerator"
    config_class = EnumeratorConfig
    output_key = OUTPUT_KEY

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        cfg: EnumeratorConfig = self.config
        if cfg.values is not None:
            overrides = [{"value": value} for value in cfg.values]
        else:
            overrides = [_item_params(item) for item in cfg.items or []]
        return {self.output_key: tuple(EnumerationItem.create(index, params) for index, params in enumerate(overrides))}


def _item_params(item: dict[str, Any]) -> dict[str, Any]:
    if set(item) == {"params"} and isinstance(item["params"], dict):
        return dict(item["params"])
    return dict(item)
