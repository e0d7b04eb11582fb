"""Display helper that hides the user's home directory in printed paths.

Only use `PrivatePath` for output. Its string form is not a usable
filesystem path.

Examples
--------
>>> import pathlib
>>> home = pathlib.Path.home()
>>> str(PrivatePath(home)) == "~" or str(home) == home.anchor
True
"""

from __future__ import annotations

import os
import pathlib


class PrivatePath(pathlib.Path):
    """A path that prints with the home directory collapsed to ``~``."""

    def __str__(self) -> str:
        raw = super().__str__()
        home = str(pathlib.Path.home())
        if home == pathlib.Path(home).anchor:
            return raw
        if raw == home:
            return "~"
        if raw.startswith(home + os.sep):
            return "~" + raw[len(home) :]
        return raw

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"
