"""
Base configuration shared by all DTOs.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseDTO(BaseModel):
    """
    Base configuration for all DTOs.

    - Aliases are generated in camelCase for JSON serialization.
    - Allows population by field name (snake_case) in Python code.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
