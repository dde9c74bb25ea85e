from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from rich.console import Console

from workspace_cli_manager.formatting import bool_text, mask_secret
from workspace_cli_manager.layout import Column, Row
from workspace_cli_manager.models import DEFAULT_PROFILE_ID, NEW_PROFILE_ID, Profile
from workspace_cli_manager.table_view import print_heading, run_table

NEW_PROFILE_NAME = "Add new profile"

PROFILE_COLUMNS: Tuple[Column, ...] = (
    Column("Id", 10),
    Column("Name", 20),
    Column("Active", 10),
    Column("Hostname", 15),
    Column("SSH port", 10),
    Column("SSH user", 10),
    Column("SSH password", 15),
    Column("SSH private key path", 20),
)


def format_profile_row(profile: Profile, active_profile_id: str) -> Row:
    is_active = bool_text(profile.id == active_profile_id)

    if profile.id == DEFAULT_PROFILE_ID:
        row: Row = (profile.id, profile.name, is_active, "-", "-", "-", "-", "-")
    elif profile.id == NEW_PROFILE_ID:
        row = (profile.id, profile.name, "", "", "", "", "", "")
    else:
        base = (profile.id, profile.name, is_active, profile.hostname, str(profile.port), profile.auth.user)
        if profile.auth.private_key_path is not None:
            row = base + ("-", profile.auth.private_key_path)
        elif profile.auth.password is not None:
            row = base + (mask_secret(profile.auth.password), "-")
        else:
            row = base + ("-", "-")

    assert len(row) == len(PROFILE_COLUMNS), "profile row arity must match PROFILE_COLUMNS"
    return row


def profile_rows(profiles: Sequence[Profile], active_profile_id: str) -> Tuple[List[Row], int]:
    """Rows for `profiles` plus the index of the active profile (0 when absent)."""
    rows: List[Row] = []
    active_index = 0
    for i, profile in enumerate(profiles):
        if profile.id == active_profile_id:
            active_index = i
        rows.append(format_profile_row(profile, active_profile_id))
    return rows, active_index


def _render(
    profiles: Sequence[Profile],
    active_profile_id: str,
    *,
    selectable: bool,
    console: Console,
) -> str:
    rows, active_index = profile_rows(profiles, active_profile_id)
    return run_table(
        PROFILE_COLUMNS,
        rows,
        active_index=active_index,
        active_id=active_profile_id,
        selectable=selectable,
        console=console,
    )


def get_profile_id_from_prompt(
    profiles: Sequence[Profile],
    active_profile_id: str,
    title: str,
    with_create_option: bool,
    *,
    console: Optional[Console] = None,
) -> str:
    """
    Let the user pick a profile. Returns its id, NEW_PROFILE_ID for the
    "Add new profile" row, or "" when the prompt was dismissed.
    """
    console = console if console is not None else Console()
    print_heading(console, title)

    choices = list(profiles)
    if with_create_option:
        choices.append(Profile(id=NEW_PROFILE_ID, name=NEW_PROFILE_NAME))

    return _render(choices, active_profile_id, selectable=True, console=console)


def render_profiles(
    profiles: Sequence[Profile],
    active_profile_id: str,
    *,
    console: Optional[Console] = None,
) -> None:
    console = console if console is not None else Console()
    print_heading(console, "Profiles")
    _render(profiles, active_profile_id, selectable=False, console=console)
