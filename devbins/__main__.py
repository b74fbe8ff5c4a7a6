"""
Entry point for running devbins as a module.

Usage: python -m devbins [command] [options]
"""

from devbins.cli.parser import main

if __name__ == "__main__":
    main()
