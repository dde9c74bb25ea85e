from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from workspace_cli_manager.models import DEFAULT_PROFILE_ID, NEW_PROFILE_ID, Profile

logger = logging.getLogger(__name__)

ENV_WCM_CONFIG_DIR = "WCM_CONFIG_DIR"
CONFIG_FILE_NAME = "config.json"

DEFAULT_PROFILE = Profile(
    id=DEFAULT_PROFILE_ID,
    name="Default",
    hostname="localhost",
    port=2222,
    api_url="http://localhost:3000",
)


class ConfigError(Exception):
    pass


def get_config_dir(explicit: Optional[str] = None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    v = os.environ.get(ENV_WCM_CONFIG_DIR)
    if isinstance(v, str) and v.strip():
        return Path(v.strip()).expanduser()
    return Path.home() / ".config" / "wcm"


@dataclass
class Config:
    active_profile_id: str = DEFAULT_PROFILE_ID
    profiles: List[Profile] = field(default_factory=lambda: [DEFAULT_PROFILE])

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        for p in self.profiles:
            if p.id == profile_id:
                return p
        return None

    def get_active_profile(self) -> Profile:
        p = self.get_profile(self.active_profile_id)
        if p is None:
            raise ConfigError(f"active profile {self.active_profile_id!r} does not exist")
        return p

    def set_active_profile(self, profile_id: str) -> None:
        if self.get_profile(profile_id) is None:
            raise ConfigError(f"profile {profile_id!r} does not exist")
        self.active_profile_id = profile_id

    def add_profile(self, profile: Profile) -> None:
        if not profile.id or profile.id in (DEFAULT_PROFILE_ID, NEW_PROFILE_ID):
            raise ConfigError(f"invalid profile id: {profile.id!r}")
        if self.get_profile(profile.id) is not None:
            raise ConfigError(f"profile {profile.id!r} already exists")
        if profile.auth.password is not None and profile.auth.private_key_path is not None:
            raise ConfigError("a profile uses either a password or a private key, not both")
        self.profiles.append(profile)

    def remove_profile(self, profile_id: str) -> None:
        if profile_id == DEFAULT_PROFILE_ID:
            raise ConfigError("the default profile cannot be removed")
        if self.get_profile(profile_id) is None:
            raise ConfigError(f"profile {profile_id!r} does not exist")
        self.profiles = [p for p in self.profiles if p.id != profile_id]
        if self.active_profile_id == profile_id:
            self.active_profile_id = DEFAULT_PROFILE_ID

    def to_json(self) -> Dict[str, Any]:
        return {
            "activeProfile": self.active_profile_id,
            "profiles": [p.to_json() for p in self.profiles],
        }


def config_path(config_dir: Path) -> Path:
    return config_dir / CONFIG_FILE_NAME


def load_config(config_dir: Path) -> Config:
    path = config_path(config_dir)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Config()
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e

    try:
        obj = json.loads(raw)
    except ValueError as e:
        raise ConfigError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    try:
        profiles = [Profile.from_json(p) for p in obj.get("profiles") or [] if isinstance(p, dict)]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{path}: invalid profile: {e}") from e
    if not any(p.id == DEFAULT_PROFILE_ID for p in profiles):
        profiles.insert(0, DEFAULT_PROFILE)
    active = obj.get("activeProfile")
    return Config(
        active_profile_id=active if isinstance(active, str) and active else DEFAULT_PROFILE_ID,
        profiles=profiles,
    )


def save_config(config_dir: Path, config: Config) -> None:
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_path(config_dir)
    data = json.dumps(config.to_json(), indent=2) + "\n"
    # Write-then-rename so a crash never leaves a truncated config behind.
    fd, tmp = tempfile.mkstemp(prefix=".config.", suffix=".tmp", dir=str(config_dir))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    logger.debug("saved config to %s", path)


def default_ssh_config_path() -> Path:
    return Path.home() / ".ssh" / "config"


def remove_workspace_ssh_entries(
    profile_id: str,
    workspace_name: str,
    projects: Sequence[str],
    *,
    ssh_config_path: Optional[Path] = None,
) -> int:
    """
    Drop the `Host <profile>-<workspace>-<project>` block of each project.

    Only exact host names are matched, so a workspace whose name merely starts
    with `workspace_name` keeps its entries. Returns the number of blocks
    removed. A missing SSH config is not an error.
    """
    hosts = [f"{profile_id}-{workspace_name}-{p}" for p in projects if p]
    if not hosts:
        return 0
    path = ssh_config_path if ssh_config_path is not None else default_ssh_config_path()
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return 0

    alts = "|".join(re.escape(h) for h in hosts)
    pat = re.compile(
        r"^Host (?:" + alts + r")[ \t]*(?:\n|$)(?:[ \t]+.*(?:\n|$))*",
        flags=re.MULTILINE,
    )
    new_text, n = pat.subn("", text)
    if n:
        path.write_text(new_text, encoding="utf-8")
        logger.debug("removed %d ssh entries for %s/%s from %s", n, profile_id, workspace_name, path)
    return n
