"""Main entry point when executing ratepipe as a package.

This allows running the package using python -m ratepipe.
"""

from ratepipe.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
