from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from workspace_cli_manager import __version__
from workspace_cli_manager.client import ClientError, HttpWorkspaceClient, WorkspaceClient
from workspace_cli_manager.config import (
    ENV_WCM_CONFIG_DIR,
    ConfigError,
    get_config_dir,
    load_config,
    remove_workspace_ssh_entries,
    save_config,
)
from workspace_cli_manager.models import DEFAULT_PROFILE_ID, NEW_PROFILE_ID, Profile, ProfileAuth, Workspace
from workspace_cli_manager.profile_list import get_profile_id_from_prompt, render_profiles
from workspace_cli_manager.workspace_select import get_workspace_name_from_prompt

logger = logging.getLogger(__name__)

# Set inside a workspace to target it without prompting.
ENV_WCM_WS_NAME = "WCM_WS_NAME"

ClientFactory = Callable[[Profile], WorkspaceClient]


def _default_client_factory(profile: Profile) -> WorkspaceClient:
    return HttpWorkspaceClient(profile.api_url)


def _error(msg: object) -> None:
    print(f"Error: {msg}", file=sys.stderr)


def cmd_profile_list(config_dir: Path) -> int:
    config = load_config(config_dir)
    render_profiles(config.profiles, config.active_profile_id)
    return 0


def cmd_profile_use(config_dir: Path, profile_id: Optional[str]) -> int:
    config = load_config(config_dir)
    if not profile_id:
        profile_id = get_profile_id_from_prompt(
            config.profiles, config.active_profile_id, "Choose a profile", True
        )
    if not profile_id:
        return 0
    if profile_id == NEW_PROFILE_ID:
        print("Run `wcm profile add --id ID ...` to create a new profile.")
        return 0
    config.set_active_profile(profile_id)
    save_config(config_dir, config)
    print(f"Active profile set to {profile_id}")
    return 0


def cmd_profile_add(config_dir: Path, args: argparse.Namespace) -> int:
    config = load_config(config_dir)
    profile = Profile(
        id=args.id,
        name=args.name or args.id,
        hostname=args.hostname,
        port=args.port,
        auth=ProfileAuth(
            user=args.user,
            password=args.password,
            private_key_path=args.private_key_path,
        ),
        api_url=args.api_url or "",
    )
    config.add_profile(profile)
    save_config(config_dir, config)
    print(f"Profile {profile.id} added")
    return 0


def cmd_profile_remove(config_dir: Path, profile_id: Optional[str]) -> int:
    config = load_config(config_dir)
    if not profile_id:
        removable = [p for p in config.profiles if p.id != DEFAULT_PROFILE_ID]
        if not removable:
            print("No profiles to remove.")
            return 0
        profile_id = get_profile_id_from_prompt(
            removable, config.active_profile_id, "Select a profile to remove", False
        )
    if not profile_id:
        return 0
    config.remove_profile(profile_id)
    save_config(config_dir, config)
    print(f"Profile {profile_id} removed")
    return 0


def cmd_workspace_delete(
    config_dir: Path,
    workspace_name: Optional[str],
    *,
    force: bool,
    client_factory: ClientFactory = _default_client_factory,
) -> int:
    config = load_config(config_dir)
    active_profile = config.get_active_profile()
    client = client_factory(active_profile)

    env_name = os.environ.get(ENV_WCM_WS_NAME)
    if env_name:
        workspace_name = env_name

    workspaces: Optional[List[Workspace]] = None
    if not workspace_name:
        workspaces = client.list_workspaces()
        if not workspaces:
            print("No workspaces available.")
            return 1
        workspace_name = get_workspace_name_from_prompt(workspaces, "delete")
    if not workspace_name:
        return 0

    # Project names are gone once the service has removed the workspace.
    if workspaces is None:
        workspaces = client.list_workspaces()
    projects: Tuple[str, ...] = ()
    for ws in workspaces:
        if ws.name == workspace_name:
            projects = ws.projects
            break

    client.remove_workspace(workspace_name, force=force)
    removed = remove_workspace_ssh_entries(active_profile.id, workspace_name, projects)
    logger.debug("workspace %s deleted, %d ssh entries removed", workspace_name, removed)
    print(f"Workspace {workspace_name} deleted")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wcm", description="Workspace CLI Manager (profiles and workspaces)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config-dir",
        dest="config_dir",
        default=None,
        help=f"Override the config dir (or set ${ENV_WCM_CONFIG_DIR}).",
    )
    parser.add_argument("--debug", action="store_true", help="Log debug output to stderr.")

    sub = parser.add_subparsers(dest="command")

    p_profile = sub.add_parser("profile", help="Manage connection profiles.")
    profile_sub = p_profile.add_subparsers(dest="profile_command")
    profile_sub.add_parser("list", aliases=["ls"], help="Show all profiles.")

    p_use = profile_sub.add_parser("use", help="Set the active profile (prompts when no id is given).")
    p_use.add_argument("profile_id", nargs="?", default=None)

    p_add = profile_sub.add_parser("add", help="Add a profile.")
    p_add.add_argument("--id", required=True)
    p_add.add_argument("--name", default=None)
    p_add.add_argument("--hostname", required=True)
    p_add.add_argument("--port", type=int, default=22)
    p_add.add_argument("--user", required=True)
    p_add.add_argument("--api-url", dest="api_url", default=None, help="Workspace service URL.")
    p_auth = p_add.add_mutually_exclusive_group(required=True)
    p_auth.add_argument("--password", default=None)
    p_auth.add_argument("--private-key-path", dest="private_key_path", default=None)

    p_rm = profile_sub.add_parser("remove", aliases=["rm"], help="Remove a profile (prompts when no id is given).")
    p_rm.add_argument("profile_id", nargs="?", default=None)

    p_ws = sub.add_parser("workspace", aliases=["ws"], help="Manage workspaces.")
    ws_sub = p_ws.add_subparsers(dest="workspace_command")
    p_delete = ws_sub.add_parser("delete", aliases=["remove", "rm"], help="Delete the workspace.")
    p_delete.add_argument("workspace_name", nargs="?", default=None)
    p_delete.add_argument("-f", "--force", action="store_true", help="Force the workspace removal.")

    return parser


def main(argv: Optional[List[str]] = None, *, client_factory: Optional[ClientFactory] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    config_dir = get_config_dir(args.config_dir)

    try:
        if args.command == "profile":
            pcmd = args.profile_command or "list"
            if pcmd in ("list", "ls"):
                return cmd_profile_list(config_dir)
            if pcmd == "use":
                return cmd_profile_use(config_dir, args.profile_id)
            if pcmd == "add":
                return cmd_profile_add(config_dir, args)
            if pcmd in ("remove", "rm"):
                return cmd_profile_remove(config_dir, args.profile_id)
        if args.command in ("workspace", "ws"):
            if args.workspace_command in ("delete", "remove", "rm"):
                return cmd_workspace_delete(
                    config_dir,
                    args.workspace_name,
                    force=bool(args.force),
                    client_factory=client_factory or _default_client_factory,
                )
    except (ConfigError, ClientError) as e:
        _error(e)
        return 1

    parser.print_help()
    return 2
