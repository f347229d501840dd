#!/usr/bin/env python3
"""
rd-auto-add.py - cron launcher for rd-autoadd (install with `pip install .` first).

  0 */6 * * * cd /opt/rd-autoadd && ./scripts/rd-auto-add.py >> logs/cron.log 2>&1
"""

import sys

from rd_autoadd.cli import main

if __name__ == "__main__":
    sys.exit(main())
