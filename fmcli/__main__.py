"""Allow running as `python -m fmcli`"""

from .cli import main

if __name__ == "__main__":
    main()
