"""
MANAGE action response schema.

The decision-maker (an LLM reading the manage prompt) answers with a JSON
object naming one management action and its parameters. This module parses
and validates that answer; safety enforcement happens in
scoring.management_rules.
"""

import json
import logging
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .position import ActionHint

logger = logging.getLogger(__name__)

# Parameter each manage type must carry
REQUIRED_PARAMS = {
    ActionHint.CLOSE_PARTIAL: "close_percent",
    ActionHint.TAKE_PARTIAL: "close_percent",
    ActionHint.TIGHTEN_STOP: "new_stop_loss",
    ActionHint.ADJUST_TP: "new_take_profit",
    ActionHint.ADD_MARGIN: "margin_amount",
}


class ManageResponseError(ValueError):
    """The decision-maker's answer is not a valid MANAGE response."""


class ManageActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbol: str
    action: Literal["MANAGE"] = "MANAGE"
    manage_type: ActionHint = Field(..., alias="manageType")
    conviction: float = Field(..., ge=1, le=10)
    reason: str = ""

    close_percent: Optional[float] = Field(None, alias="closePercent", ge=1, le=100, allow_inf_nan=False)
    new_stop_loss: Optional[float] = Field(None, alias="newStopLoss", gt=0, allow_inf_nan=False)
    new_take_profit: Optional[float] = Field(None, alias="newTakeProfit", gt=0, allow_inf_nan=False)
    margin_amount: Optional[float] = Field(None, alias="marginAmount", gt=0, allow_inf_nan=False)

    @field_validator("manage_type")
    @classmethod
    def _no_empty_action(cls, value: ActionHint) -> ActionHint:
        if value == ActionHint.NONE:
            raise ValueError("manageType must name a management action")
        return value

    @model_validator(mode="after")
    def _required_params(self) -> "ManageActionResponse":
        param = REQUIRED_PARAMS.get(self.manage_type)
        if param and getattr(self, param) is None:
            raise ValueError(f"{self.manage_type.value} requires {param}")
        return self


def _extract_json(raw_text: str) -> Optional[Dict[str, Any]]:
    """Extract JSON from an LLM response (handles fenced blocks)."""
    if not raw_text:
        return None

    text = raw_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None


def validate_manage_response(payload: Union[str, Dict[str, Any]]) -> ManageActionResponse:
    """
    Parse a MANAGE response from raw LLM text or an already-decoded dict.

    Raises:
        ManageResponseError: not JSON, unknown manageType, missing per-type
            parameter, or a value out of range.
    """
    if isinstance(payload, str):
        decoded = _extract_json(payload)
        if decoded is None:
            raise ManageResponseError("Response is not a JSON object")
        payload = decoded

    if not isinstance(payload, dict):
        raise ManageResponseError("Response is not a JSON object")

    try:
        return ManageActionResponse.model_validate(payload)
    except ValidationError as e:
        logger.warning("Rejected MANAGE response for %s: %s", payload.get("symbol", "?"), e.errors())
        raise ManageResponseError(str(e)) from e
