"""
Entry point for running recovery_ladder as a module.

Allows running as: python -m recovery_ladder
"""

from recovery_ladder.cli import cli_main

if __name__ == "__main__":
    cli_main()
