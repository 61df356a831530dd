# SPDX-License-Identifier: BSD-3-Clause

"""Package version info."""

from __future__ import annotations

import importlib.metadata

VERSION_STRING = importlib.metadata.version("pagecheck")
