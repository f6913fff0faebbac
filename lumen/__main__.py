"""
Lumen - provider connectivity for local and cloud LLMs.

Usage:
    python -m lumen scan
"""

from lumen.cli.cli import main

if __name__ == "__main__":
    main()
