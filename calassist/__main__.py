"""Entry point for python -m calassist execution.

This module allows running calassist as a module:
    python -m calassist parse "dinner with Sam at 7pm"
    python -m calassist chat
    python -m calassist --help
"""

from calassist.cli import run

if __name__ == "__main__":
    run()
