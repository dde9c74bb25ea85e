from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from rich.console import Console

from workspace_cli_manager.formatting import or_dash
from workspace_cli_manager.layout import Column, Row
from workspace_cli_manager.models import Workspace
from workspace_cli_manager.table_view import print_heading, run_table

WORKSPACE_COLUMNS: Tuple[Column, ...] = (
    Column("Name", 20),
    Column("Id", 15),
    Column("Projects", 30),
)


def format_workspace_row(ws: Workspace) -> Row:
    return (ws.name, or_dash(ws.id), ws.display_projects)


def workspace_rows(workspaces: Sequence[Workspace]) -> List[Row]:
    return [format_workspace_row(ws) for ws in workspaces]


def get_workspace_name_from_prompt(
    workspaces: Sequence[Workspace],
    action: str,
    *,
    console: Optional[Console] = None,
) -> str:
    """Pick a workspace by name; "" when the prompt was dismissed."""
    console = console if console is not None else Console()
    print_heading(console, f"Select a workspace to {action}")
    return run_table(WORKSPACE_COLUMNS, workspace_rows(workspaces), selectable=True, console=console)
