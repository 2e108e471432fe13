"""
Entry point: python -m appstudio_installer
"""
import sys

from appstudio_installer.cli.installctl import main


if __name__ == "__main__":
    sys.exit(main())
