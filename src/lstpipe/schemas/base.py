"""Shared pydantic base for every lstpipe config schema."""

from pydantic import BaseModel, ConfigDict


class LSTBaseModel(BaseModel):
    """Strict base: unknown keys are errors and assignments are re-validated.

    UserConfig relaxes ``extra`` so old config files with unused keys still
    load; InternalConfig additionally freezes the model.
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )
