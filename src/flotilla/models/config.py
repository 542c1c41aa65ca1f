"""Configuration models."""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from flotilla.models.instance import InstanceSpec


class SecretBundle(BaseModel):
    """Key material embedded into guests in the extended variant."""
    model_config = ConfigDict(frozen=True)

    ssh_key: str = Field(..., repr=False, description="Private key contents")
    ssh_key_pub: str = Field(..., description="Public key contents")
    key_name: str = Field(default="id_rsa", description="Guest-side key file name")
    vault_password: Optional[str] = Field(default=None, repr=False)


class GlobalConfig(BaseModel):
    """Settings shared by every instance in a run."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    identity: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gh_name", "git_username", "identity"),
        description="Identity used for ssh_import_id (gh:<identity>)",
    )
    switch_name: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("windows_switch_name", "switch_name"),
    )
    git_host: Optional[str] = None
    git_repository: Optional[str] = None
    playbook: str = Field(default="site.yml")
    interface: str = Field(default="enp0s2", description="Guest primary NIC")
    memory: str = Field(default="1G")
    launch_timeout: int = Field(default=600, ge=1)
    image: Optional[str] = Field(default=None, description="Guest release to launch")
    network_mode: Literal["auto", "switch", "bridged"] = Field(default="auto")
    work_dir: Optional[Path] = Field(default=None, description="Where cloud-init files are written")
    fail_fast: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    secrets: Optional[SecretBundle] = None

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("identity", "switch_name", mode="before")
    @classmethod
    def coerce_text(cls, v):
        """YAML may hand back numbers for bare identifiers."""
        if v is None:
            return v
        return str(v).strip()

    @property
    def repository_dir(self) -> Optional[str]:
        """Directory name a clone of git_repository lands in."""
        if not self.git_repository:
            return None
        name = self.git_repository.rstrip("/").rsplit("/", 1)[-1]
        return name[:-4] if name.endswith(".git") else name


class FleetConfig(GlobalConfig):
    """Schema of the configuration file: global settings plus instances."""

    ssh_key: Optional[Path] = None
    ssh_key_pub: Optional[Path] = None
    vault_password_file: Optional[Path] = None
    instances: List[InstanceSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_consistency(self):
        """Cross-field checks that single validators cannot express."""
        if bool(self.ssh_key) != bool(self.ssh_key_pub):
            raise ValueError("ssh_key and ssh_key_pub must be configured together")
        if self.ssh_key and not (self.git_host and self.git_repository):
            raise ValueError("git_host and git_repository are required when ssh keys are configured")
        if not self.identity and not self.ssh_key:
            raise ValueError("either gh_name/git_username or ssh_key/ssh_key_pub must be configured")

        seen = set()
        for instance in self.instances:
            if instance.name in seen:
                raise ValueError(f"Duplicate instance name: {instance.name}")
            seen.add(instance.name)
        return self

    def global_config(self, secrets: Optional[SecretBundle] = None) -> GlobalConfig:
        """Project the file schema onto the run-wide settings."""
        data = {name: getattr(self, name) for name in GlobalConfig.model_fields if name != "secrets"}
        return GlobalConfig.model_validate({**data, "secrets": secrets})
