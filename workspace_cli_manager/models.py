from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

DEFAULT_PROFILE_ID = "default"
# Synthetic row offering to create a profile; never a real profile id.
NEW_PROFILE_ID = "+"


@dataclass(frozen=True)
class ProfileAuth:
    user: str = ""
    password: Optional[str] = None
    private_key_path: Optional[str] = None


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    hostname: str = ""
    port: int = 0
    auth: ProfileAuth = field(default_factory=ProfileAuth)
    api_url: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "hostname": self.hostname,
            "port": self.port,
            "auth": {
                "user": self.auth.user,
                "password": self.auth.password,
                "privateKeyPath": self.auth.private_key_path,
            },
            "apiUrl": self.api_url,
        }

    @classmethod
    def from_json(cls, obj: Dict[str, Any]) -> "Profile":
        auth = obj.get("auth") if isinstance(obj.get("auth"), dict) else {}
        password = auth.get("password")
        key_path = auth.get("privateKeyPath")
        return cls(
            id=str(obj.get("id") or ""),
            name=str(obj.get("name") or ""),
            hostname=str(obj.get("hostname") or ""),
            port=int(obj.get("port") or 0),
            auth=ProfileAuth(
                user=str(auth.get("user") or ""),
                password=password if isinstance(password, str) else None,
                private_key_path=key_path if isinstance(key_path, str) else None,
            ),
            api_url=str(obj.get("apiUrl") or ""),
        )


@dataclass(frozen=True)
class Workspace:
    id: str
    name: str
    projects: Tuple[str, ...] = ()

    @property
    def display_projects(self) -> str:
        return ", ".join(self.projects) if self.projects else "-"

    @classmethod
    def from_json(cls, obj: Dict[str, Any]) -> "Workspace":
        projects = []
        for p in obj.get("projects") or []:
            # The service returns either bare names or project objects.
            if isinstance(p, dict):
                name = p.get("name")
            else:
                name = p
            if isinstance(name, str) and name:
                projects.append(name)
        return cls(id=str(obj.get("id") or ""), name=str(obj.get("name") or ""), projects=tuple(projects))
