"""CLI entry point.

Allows running transcript-relay as a module:
    python -m transcript_relay hook
"""

from transcript_relay.cli import main

if __name__ == "__main__":
    main()
