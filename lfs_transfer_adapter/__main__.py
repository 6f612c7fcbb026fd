"""CLI entrypoint for the adapter package.
"""
from .cli import cli


if __name__ == "__main__":
    cli(prog_name="lfs-transfer-adapter")
