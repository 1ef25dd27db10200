from pydantic import BaseModel, Field

class HealthCheck(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status (ok, degraded, down)")
    components: dict[str, str] = Field(..., description="Status of individual components")
    version: str = Field(..., description="Service version")
    default_target: str = Field(..., description="Backend reached when no target header is sent")


class TargetSetting(BaseModel):
    """Body of the backend-target settings endpoints."""
    target: str
    default: str | None = None
    is_local: bool | None = None
