"""Base model configuration for configuration structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration.

    Models are immutable once loaded and accept either the camelCase keys used
    in YAML files or their snake_case field names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)
