"""Echo operator: returns its 'input_Echo' param unchanged.

Used for wiring tests and for smoke-testing a deployment's plan path
without touching any data source.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import Field

from augur.contracts import DetectionPipelineResult, OperatorContext
from augur.plugins.base import BaseOperator, OperatorConfig

DEFAULT_INPUT_KEY = "input_Echo"
DEFAULT_OUTPUT_KEY = "output_Echo"


class EchoConfig(OperatorConfig):
    input_Echo: Any = Field(description="Value echoed back as the pass-through payload")


class Echo(BaseOperator):
    """Emit a pass-through result whose payload is the input_Echo param."""

    type_tag = "Echo"
    config_class = EchoConfig
    output_key = DEFAULT_OUTPUT_KEY

    def execute(self, ctx: OperatorContext) -> Mapping[str, Any]:
        return {self.output_key: DetectionPipelineResult.passthrough(self.config.input_Echo)}
