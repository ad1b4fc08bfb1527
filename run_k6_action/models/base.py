"""Base model for Grafana Cloud k6 API payloads."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model; unknown response fields are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")
