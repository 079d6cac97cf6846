"""Main entry point when executing zestislam as a package.

This allows running the package using python -m zestislam.
"""

from zestislam.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
