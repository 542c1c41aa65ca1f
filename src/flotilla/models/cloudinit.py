"""Cloud-init document model."""

from pydantic import BaseModel, ConfigDict


class CloudInitDocument(BaseModel):
    """Rendered first-boot configuration for one instance."""
    model_config = ConfigDict(frozen=True)

    instance: str
    filename: str
    content: str
