"""Per-attempt telemetry for provider calls.

Records are written as JSON lines using ECS field names with
OpenTelemetry GenAI attributes. Files are named
``ai-telemetry-YYYY-MM-DD[-N].jsonl`` and roll over to the next index
once they reach the configured size.
"""
from __future__ import annotations

import json
import os
import socket
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

import structlog

from control_advisor.config.settings import TelemetryConfig

logger = structlog.get_logger(__name__)

LOG_FILE_PREFIX = "ai-telemetry"
SERVICE_NAME = "control-advisor"
OPERATION_NAME = "chat.completions"
CHARS_PER_TOKEN = 4


def estimate_tokens(text: Optional[str]) -> int:
    """Rough token count used when the provider reports none."""
    return len(text or "") // CHARS_PER_TOKEN


@dataclass
class TelemetryRecord:
    """One provider attempt."""
    provider: str
    model: str
    prompt: str
    response: Optional[str]
    latency_ms: int
    status: str  # "success" | "error"
    operation: str = OPERATION_NAME
    error: Optional[str] = None
    error_type: Optional[str] = None
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def usage(self) -> tuple[int, int]:
        input_tokens = self.input_tokens if self.input_tokens is not None else estimate_tokens(self.prompt)
        output_tokens = self.output_tokens if self.output_tokens is not None else estimate_tokens(self.response)
        return input_tokens, output_tokens

    def to_ecs(self, timestamp: datetime) -> dict[str, Any]:
        input_tokens, output_tokens = self.usage
        failed = self.status != "success"
        span_id = uuid.uuid4().hex[:16]
        entry: dict[str, Any] = {
            "@timestamp": timestamp.isoformat(),
            "log.level": "error" if failed else "info",
            "message": f"AI {self.operation} request to {self.provider}:{self.model}",
            "event.action": "ai_request",
            "event.category": ["ai", "api"],
            "event.outcome": "failure" if failed else "success",
            "event.duration": self.latency_ms * 1_000_000,
            "event.dataset": "ai_telemetry",
            "service.name": SERVICE_NAME,
            "host.name": os.getenv("HOSTNAME") or socket.gethostname(),
            "trace.id": uuid.uuid4().hex,
            "span.id": span_id,
            "attributes": {
                "gen_ai.system": self.provider,
                "gen_ai.request.model": self.model,
                "gen_ai.operation.name": self.operation,
                "gen_ai.usage.input_tokens": input_tokens,
                "gen_ai.usage.output_tokens": output_tokens,
                "gen_ai.usage.total_tokens": input_tokens + output_tokens,
                "gen_ai.response.latency_ms": self.latency_ms,
                "gen_ai.status": self.status,
            },
            "events": [
                {
                    "name": "gen_ai.content.prompt",
                    "attributes": {"gen_ai.prompt": self.prompt, "gen_ai.prompt.length": len(self.prompt)},
                },
                {
                    "name": "gen_ai.content.completion",
                    "attributes": {
                        "gen_ai.completion": self.response,
                        "gen_ai.completion.length": len(self.response or ""),
                    },
                },
            ],
            "metadata": dict(self.metadata),
        }
        if failed:
            entry["error.type"] = self.error_type or "ProviderError"
            entry["error.message"] = self.error or "Unknown error"
        return entry


class TelemetrySink(Protocol):
    def record(self, record: TelemetryRecord) -> None:
        ...


class NullTelemetrySink:
    """Discards every record."""

    def record(self, record: TelemetryRecord) -> None:
        return None


class JsonlTelemetrySink:
    """Appends records to daily, size-rotated JSONL files."""

    def __init__(
        self,
        log_dir: Path,
        max_file_bytes: int = 5 * 1024 * 1024,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.log_dir = Path(log_dir)
        self.max_file_bytes = max_file_bytes
        self._clock = clock

    @classmethod
    def from_config(cls, config: TelemetryConfig) -> TelemetrySink:
        if not config.enabled:
            return NullTelemetrySink()
        return cls(Path(config.log_dir), config.max_file_bytes)

    def current_file(self, now: Optional[datetime] = None) -> Path:
        """Active log file for today; moves to the next index when full."""
        day = (now or self._clock()).strftime("%Y-%m-%d")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        index = 0
        while True:
            suffix = f"-{index}" if index else ""
            path = self.log_dir / f"{LOG_FILE_PREFIX}-{day}{suffix}.jsonl"
            if not path.exists() or path.stat().st_size < self.max_file_bytes:
                return path
            index += 1

    def record(self, record: TelemetryRecord) -> None:
        now = self._clock()
        path = self.current_file(now)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_ecs(now), default=str) + "\n")
        input_tokens, output_tokens = record.usage
        logger.info(
            "ai_request_logged",
            provider=record.provider,
            model=record.model,
            status=record.status,
            latency_ms=record.latency_ms,
            total_tokens=input_tokens + output_tokens,
        )

    def _files(self) -> list[Path]:
        if not self.log_dir.exists():
            return []
        return sorted(self.log_dir.glob(f"{LOG_FILE_PREFIX}-*.jsonl"))

    def get_log_stats(self) -> dict[str, Any]:
        files = []
        for path in self._files():
            stat = path.stat()
            files.append({
                "filename": path.name,
                "size": stat.st_size,
                "modified": datetime.fromtimestamp(stat.st_mtime, timezone.utc).isoformat(),
            })
        files.sort(key=lambda f: f["modified"], reverse=True)
        total = sum(f["size"] for f in files)
        return {
            "total_files": len(files),
            "total_size": total,
            "total_size_formatted": f"{total / 1024 / 1024:.2f} MB",
            "files": files,
        }

    def cleanup_old_logs(self, days_to_keep: int = 30) -> int:
        """Delete telemetry files last modified before the cutoff."""
        cutoff = (self._clock() - timedelta(days=days_to_keep)).timestamp()
        deleted = 0
        for path in self._files():
            if path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
                logger.info("telemetry_file_deleted", filename=path.name)
        return deleted
