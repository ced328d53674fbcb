"""
Allow running the package directly with `python -m ovhctl`.
"""

from ovhctl.cli import main

if __name__ == "__main__":
    main()
