"""Entry point for the project-index CLI.

Mode detection:
- No arguments → interactive rofi selection
- Arguments present → Execute CLI command and exit
"""

import sys


def main() -> int:
    """Main entry point."""
    from project_index.cli.commands import cli_main
    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
