"""Cloud-init provider: renders and persists per-instance first-boot documents."""

import asyncio
import base64
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from flotilla.errors import CleanupFailed
from flotilla.models.cloudinit import CloudInitDocument
from flotilla.models.config import GlobalConfig
from flotilla.models.instance import InstanceSpec
from flotilla.providers.base import BaseProvider
from flotilla.utils.templates import render_template


logger = logging.getLogger(__name__)

GUEST_HOME = "/home/ubuntu"
ANSIBLE_LOG = "/var/log/flotilla-ansible.log"

CLOUD_INIT_TEMPLATE = """\
#cloud-config
hostname: {{ name }}
package_update: true
package_upgrade: true
packages:
  - net-tools
  - ca-certificates
  - curl
{% if secrets %}
  - git
  - ansible
{% else %}
ssh_import_id:
  - gh:{{ identity }}
{% endif %}
write_files:
  - path: /etc/netplan/10-netcfg.yaml
    owner: root:root
    permissions: '0600'
    content: |
      network:
        version: 2
        ethernets:
          {{ interface }}:
            dhcp4: false
            addresses: [{{ ip }}]
            nameservers:
              addresses: [{{ dns }}]
            routes:
              - to: default
                via: {{ gateway }}
{% if secrets %}
{% for file in secret_files %}
  - path: {{ file.path }}
    owner: ubuntu:ubuntu
    permissions: '{{ file.permissions }}'
    encoding: b64
    content: {{ file.content }}
    defer: true
{% endfor %}
{% endif %}
runcmd:
  - netplan apply
{% if secrets %}
  - chown -R ubuntu:ubuntu {{ home }}/.ssh
  - sudo -u ubuntu sh -c 'ssh-keyscan -H {{ git_host }} >> {{ home }}/.ssh/known_hosts'
  - sudo -u ubuntu git clone git@{{ git_host }}:{{ git_repository }} {{ home }}/{{ repo_dir }}
  - sh -c 'cd {{ home }}/{{ repo_dir }} && ansible-playbook -i localhost, -c local {{ playbook }}{% if vault %} --vault-password-file {{ home }}/.vault_pass{% endif %} > {{ ansible_log }} 2>&1'
{% endif %}
"""


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class CloudInitProvider(BaseProvider):
    """Provider for rendering cloud-init documents."""

    def __init__(self, template: str = CLOUD_INIT_TEMPLATE):
        """Initialize cloud-init provider."""
        self.template = template
        self.config: Optional[GlobalConfig] = None

    async def initialize(self, config: GlobalConfig):
        """Initialize provider with configuration."""
        self.config = config

    async def preflight(self) -> None:
        pass

    def render(self, config: GlobalConfig, instance: InstanceSpec) -> CloudInitDocument:
        """Render the document for one instance. Performs no I/O."""
        content = render_template(self.template, **self._context(config, instance))
        return CloudInitDocument(
            instance=instance.name,
            filename=instance.cloud_init_filename,
            content=content,
        )

    def _context(self, config: GlobalConfig, instance: InstanceSpec) -> Dict[str, Any]:
        context: Dict[str, Any] = {
            "name": instance.name,
            "identity": config.identity,
            "interface": config.interface,
            "ip": instance.ip,
            "dns": instance.dns_csv,
            "gateway": instance.gateway,
            "secrets": config.secrets is not None,
            "home": GUEST_HOME,
        }

        secrets = config.secrets
        if secrets is None:
            return context

        secret_files = [
            {
                "path": f"{GUEST_HOME}/.ssh/{secrets.key_name}",
                "permissions": "0600",
                "content": _b64(secrets.ssh_key),
            },
            {
                "path": f"{GUEST_HOME}/.ssh/{secrets.key_name}.pub",
                "permissions": "0644",
                "content": _b64(secrets.ssh_key_pub),
            },
        ]
        if secrets.vault_password is not None:
            secret_files.append({
                "path": f"{GUEST_HOME}/.vault_pass",
                "permissions": "0600",
                "content": _b64(secrets.vault_password),
            })

        context.update(
            secret_files=secret_files,
            git_host=config.git_host,
            git_repository=config.git_repository,
            repo_dir=config.repository_dir,
            playbook=config.playbook,
            vault=secrets.vault_password is not None,
            ansible_log=ANSIBLE_LOG,
        )
        return context

    @staticmethod
    def path_for(document: CloudInitDocument, directory: Path) -> Path:
        """Where write() puts a document."""
        return Path(directory) / document.filename

    async def write(self, document: CloudInitDocument, directory: Path) -> Path:
        """Persist a document where the launcher can read it."""
        path = self.path_for(document, directory)
        await asyncio.to_thread(self._write_private, path, document.content)
        logger.debug(f"Wrote cloud-init for {document.instance} to {path}")
        return path

    @staticmethod
    def _write_private(path: Path, content: str) -> None:
        # Documents may carry key material; never create them world-readable
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", newline="\n") as handle:
            handle.write(content)

    async def remove(self, path: Path) -> None:
        """Remove a rendered document. Absence is not an error."""
        try:
            await asyncio.to_thread(Path(path).unlink, missing_ok=True)
            logger.debug(f"Removed {path}")
        except OSError as e:
            raise CleanupFailed(f"Failed to remove {path}: {e}") from e
