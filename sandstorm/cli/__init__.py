"""
Sandstorm command line.

Usage:
    sandstorm dispatch <path> [--directive group|handler|action]
    sandstorm routes build
    sandstorm routes list
    sandstorm registry <path>
    sandstorm serve
"""

__cli_name__ = "sandstorm"


def main():
    """Wrapper to avoid eager import of __main__ which causes warnings with -m."""
    from .__main__ import main as _main
    return _main()
