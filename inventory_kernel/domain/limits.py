"""String length limits applied to free-text inputs and column definitions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StringLimits:
    """
    Maximum lengths for operator-entered text.

    Defaults match the packaged settings; inventory_config builds an
    instance from YAML for deployments that override them.
    """

    reference: int = 500
    supplier: int = 255
    customer: int = 255
    notes: int = 2000
    text: int = 1000
    column_name: int = 100
    option_value: int = 100


DEFAULT_LIMITS = StringLimits()
