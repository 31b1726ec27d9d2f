"""Allow ``python -m ragchat.cli`` execution."""

from ragchat.cli.commands import main

main()
