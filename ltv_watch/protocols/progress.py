"""Progress reporting for long scans."""
from __future__ import annotations

import inspect

from ..interfaces.protocol_adapter import ProgressCallback


async def report_progress(
    progress: ProgressCallback | None, current: int, total: int
) -> None:
    """Invoke an optional sync or async progress callback."""
    if progress is None:
        return
    result = progress(current, total)
    if inspect.isawaitable(result):
        await result
