"""Main entry point when executing subsweep as a package.

This allows running the package using python -m subsweep.
"""

from subsweep.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
