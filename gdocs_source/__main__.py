"""
gdocs-source entry point - ``python -m gdocs_source <command>``.

    python -m gdocs_source import --out content/posts
    python -m gdocs_source auth

Run ``python -m gdocs_source --help`` for the full command list.
"""

from gdocs_source.cli import cli

if __name__ == "__main__":
    cli()
