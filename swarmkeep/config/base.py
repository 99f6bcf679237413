"""Shared base for configuration models."""

from pydantic import BaseModel, ConfigDict


class SwarmBaseConfig(BaseModel):
    """Base configuration: unknown keys are rejected and assignments are re-validated."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)
