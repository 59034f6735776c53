"""
Base data model for all Fundex models.
"""

from pydantic import BaseModel, ConfigDict


class FundexModel(BaseModel):
    """Base model with the shared pydantic configuration."""

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
    )
