"""Package entry point for ``python -m transcript_core``.

WHY: Users run the tool as ``python -m transcript_core <url>``. Python's
``-m`` flag looks for ``__main__.py`` inside the package and executes it.

HOW: Delegates to the CLI's main() function.
"""

from transcript_core.cli import main

if __name__ == "__main__":
    main()
