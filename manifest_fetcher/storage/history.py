"""
Keeps a JSON Lines record of past fetch runs.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os

from manifest_fetcher.models.result import FetchResult

log = logging.getLogger(__name__)


class FetchHistory:
    """Append-only run history stored next to the configuration file."""

    FILE_NAME = "fetch_history.jsonl"

    def __init__(self, config_dir: Path):
        self.path = config_dir / self.FILE_NAME

    async def record_success(self, result: FetchResult) -> None:
        await self._append(
            {
                "timestamp": int(time.time()),
                "target": result.target,
                "instance_url": result.instance_url,
                "status": "success",
                "duration_seconds": round(result.duration_seconds, 2),
                "size_bytes": result.size_bytes,
                "manifest_path": str(result.manifest_path),
            }
        )

    async def record_failure(
        self, target: str, instance_url: str, error: Exception, duration_s: float
    ) -> None:
        await self._append(
            {
                "timestamp": int(time.time()),
                "target": target,
                "instance_url": instance_url,
                "status": type(error).__name__,
                "duration_seconds": round(duration_s, 2),
                "error": str(error),
            }
        )

    async def recent(self, limit: int = 10) -> list[dict[str, Any]]:
        """Returns up to `limit` entries, newest first. Unreadable lines are skipped."""
        if not await aiofiles.os.path.isfile(self.path):
            return []

        entries: list[dict[str, Any]] = []
        async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
            async for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(json.loads(line))
                except json.JSONDecodeError:
                    log.debug(f"Skipping corrupt history line: {line[:80]}")
        return list(reversed(entries))[:limit]

    async def clear(self) -> bool:
        try:
            if await aiofiles.os.path.isfile(self.path):
                await aiofiles.os.remove(self.path)
            return True
        except OSError as e:
            log.error(f"Failed to clear history: {e}")
            return False

    async def _append(self, entry: dict[str, Any]) -> None:
        try:
            await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
            async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                await f.write(json.dumps(entry) + "\n")
        except OSError as e:
            log.warning(f"[yellow]Could not save fetch history:[/] {e}")
