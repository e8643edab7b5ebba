"""Pydantic schemas for pathway stages."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from tracker.db.enums import AutoAdvanceType, Pathway


class AutoAdvanceRule(BaseModel):
    """TASK_COMPLETED: value is a keyword. TIME_IN_STAGE: value is a day count."""
    type: AutoAdvanceType
    value: str = Field(..., min_length=1, max_length=255)

    @model_validator(mode="after")
    def _check_days(self) -> "AutoAdvanceRule":
        if self.type == AutoAdvanceType.TIME_IN_STAGE:
            if not self.value.isdigit() or int(self.value) < 1:
                raise ValueError("TIME_IN_STAGE value must be a positive whole number of days")
        return self


class StageRead(BaseModel):
    id: UUID
    pathway: Pathway
    name: str
    order: int
    description: str | None = None
    auto_advance_rule: AutoAdvanceRule | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def _from_columns(cls, data: Any) -> Any:
        """Fold the ORM's auto_advance_type/value columns into one nested rule."""
        if isinstance(data, dict) or not hasattr(data, "auto_advance_type"):
            return data
        rule = None
        if data.auto_advance_type:
            rule = {"type": data.auto_advance_type, "value": data.auto_advance_value or ""}
        return {
            "id": data.id,
            "pathway": data.pathway,
            "name": data.name,
            "order": data.order,
            "description": data.description,
            "auto_advance_rule": rule,
        }


class StageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)
    auto_advance_rule: AutoAdvanceRule | None = None


class StageUpdate(BaseModel):
    """Partial update. Send auto_advance_rule: null to clear the rule."""
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=2000)
    auto_advance_rule: AutoAdvanceRule | None = None


class StageReorder(BaseModel):
    """Every stage id of the pathway, in the desired order."""
    stage_ids: list[UUID] = Field(..., min_length=1)
