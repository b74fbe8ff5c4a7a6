"""
Entry point for running devbins CLI as a module.

Usage: python -m devbins.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
