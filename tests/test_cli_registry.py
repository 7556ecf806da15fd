from meetingsync.cli import build_parser, registered_commands


def test_registered_commands_are_stable() -> None:
    assert registered_commands() == ["sync", "doctor"]


def test_subcommand_help_renders() -> None:
    parser = build_parser()
    for command in registered_commands():
        subparser = parser._subparsers._group_actions[0].choices[command]  # type: ignore[attr-defined]
        assert "usage: meetingsync" in subparser.format_help()


def test_sync_defaults() -> None:
    args = build_parser().parse_args(["sync"])
    assert args.source == "eventkit"
    assert args.days == 0
    assert args.continue_on_error is False
