"""Main entry point when executing setman as a package.

This allows running the package using python -m setman.
"""

from setman.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
