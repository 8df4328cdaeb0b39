"""Main entry point for the pagestreak package."""

from pagestreak.cli import app


def main():
    """Run the pagestreak command-line interface."""
    app()


if __name__ == "__main__":
    main()
