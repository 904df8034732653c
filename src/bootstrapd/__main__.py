# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Allow ``python -m bootstrapd``."""

import sys

from bootstrapd.cli.main import main

sys.exit(main())
