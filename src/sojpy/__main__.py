"""Main function for sojpy."""

from sojpy.core import cli


def run_main() -> None:
    """Main entry point to sojpy."""
    cli.app()


if __name__ == "__main__":
    cli.app()
