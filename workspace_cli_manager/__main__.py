from workspace_cli_manager.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
