"""Allow running edgedeck with: python -m edgedeck"""

from edgedeck.cli.main import cli_entrypoint

if __name__ == "__main__":
    cli_entrypoint()
