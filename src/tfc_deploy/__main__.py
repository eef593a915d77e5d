"""Allow `python -m tfc_deploy`."""

from __future__ import annotations

from tfc_deploy.main import main

if __name__ == "__main__":
    raise SystemExit(main())
