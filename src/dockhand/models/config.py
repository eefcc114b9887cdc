"""Configuration models."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuthConfig(BaseModel):
    """Registry credentials used when pulling images."""
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    registry: Optional[str] = Field(None, description="Registry server address")

    def to_docker(self) -> Optional[dict]:
        """Return the ``auth_config`` mapping the docker SDK expects."""
        if not self.username:
            return None
        auth = {"username": self.username, "password": self.password or ""}
        if self.email:
            auth["email"] = self.email
        if self.registry:
            auth["serveraddress"] = self.registry
        return auth


class DockerRuntimeConfig(BaseModel):
    """Docker transport configuration."""
    base_url: Optional[str] = Field(None, description="Daemon URL, defaults to the environment")
    timeout: int = Field(default=60, ge=1, description="API call timeout in seconds")
    keep_images: int = Field(default=5, ge=0)
    auth: AuthConfig = Field(default_factory=AuthConfig)


class ComposeConfig(BaseModel):
    """Flags consumed by the orchestrator verbs."""
    model_config = ConfigDict(extra="ignore")

    dry_run: bool = False
    attach: bool = False
    pull: bool = False
    remove: bool = False
    recover: bool = False
    wait: float = Field(default=1.0, ge=0, description="Grace period before a forced stop")
    tier_timeout: Optional[float] = Field(None, gt=0, description="Deadline for each plan tier")
    keep_images: int = Field(default=5, ge=0)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()
