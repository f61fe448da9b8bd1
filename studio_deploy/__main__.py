"""Entry point for the deploy tooling.

Usage::

    python -m studio_deploy --stage prod --domain-name example.com --hosted-zone-id Z123
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    main()
