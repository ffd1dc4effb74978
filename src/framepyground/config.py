"""Configuration of the execution layer.

The configuration decides if operations should try the accelerated
backend at all, from which size it's worth paying the cost of handing
the data over to it, and the tolerance used when comparing floats
for membership tests.

It can be built explicitly::

    config = ExecutionConfig(accelerated=False)

or from ``FRAMEPYGROUND_*`` environment variables::

    FRAMEPYGROUND_ACCELERATED=false python analysis.py
"""

import os
from typing import Any

from pydantic import BaseModel, Field

ENV_PREFIX = "FRAMEPYGROUND_"


class ExecutionConfig(BaseModel):
    """Options controlling how operations are executed."""

    model_config = {"frozen": True}

    accelerated: bool = Field(
        default=True,
        description="Try the accelerated backend before the portable implementation",
    )
    min_accelerated_rows: int = Field(
        default=0,
        ge=0,
        description="Columns shorter than this always run the portable implementation",
    )
    isin_tolerance: float = Field(
        default=1e-9,
        ge=0,
        description="Absolute tolerance used by isin on numeric columns",
    )

    @classmethod
    def from_env(cls, **overrides: Any) -> "ExecutionConfig":
        """Create config from FRAMEPYGROUND_* environment variables."""
        env_map = {
            "accelerated": f"{ENV_PREFIX}ACCELERATED",
            "min_accelerated_rows": f"{ENV_PREFIX}MIN_ACCELERATED_ROWS",
            "isin_tolerance": f"{ENV_PREFIX}ISIN_TOLERANCE",
        }
        values: dict[str, Any] = {}
        for field_name, env_var in env_map.items():
            env_val = os.environ.get(env_var)
            if env_val is None:
                continue
            if field_name == "accelerated":
                values[field_name] = env_val.strip().lower() in ("true", "1", "yes")
            elif field_name == "min_accelerated_rows":
                values[field_name] = int(env_val)
            else:
                values[field_name] = float(env_val)
        values.update(overrides)
        return cls(**values)
