from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

from repo_recon.config import settings
from repo_recon.progress.bus import ProgressBus

COMPARISON_CHANNEL = "comparison_progress"
ANALYSIS_CHANNEL = "analysis_progress"
CHANNELS = (COMPARISON_CHANNEL, ANALYSIS_CHANNEL)


def stream_name_for(channel: str, session_id: str) -> str:
    return f"{channel}_{session_id}"


def timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class _ProgressBroadcaster:
    channel: str
    step_base: dict[str, int] = {}
    step_range: dict[str, int] = {}

    def __init__(self, session_id: str | None, bus: ProgressBus) -> None:
        self.session_id = session_id
        self.bus = bus

    @property
    def enabled(self) -> bool:
        return bool(self.session_id and self.session_id.strip())

    @property
    def stream_name(self) -> str:
        return stream_name_for(self.channel, self.session_id or "")

    def step_base_percentage(self, step: str) -> int:
        return self.step_base.get(step, 0)

    def step_percentage_range(self, step: str) -> int:
        return self.step_range.get(step, 0)

    def calculate_percentage(self, step: str, current: int | None, total: int | None) -> int:
        base = self.step_base_percentage(step)
        if current is not None and total:
            # Half-up rounding: 42.5 reports as 43.
            return math.floor(base + (current / total) * self.step_percentage_range(step) + 0.5)
        return base

    async def _broadcast(self, payload: dict[str, Any]) -> None:
        if not self.enabled:
            return
        payload["timestamp"] = timestamp()
        await self.bus.publish(self.stream_name, payload)


class ComparisonProgressBroadcaster(_ProgressBroadcaster):
    """Progress events for the comparison pipeline.

    ``analyzing_repositories`` owns the widest percentage band because it is
    the slow, per-repository phase.
    """

    channel = COMPARISON_CHANNEL
    step_base = {
        "parsing_query": 0,
        "searching_github": 10,
        "merging_results": 20,
        "analyzing_repositories": 30,
        "comparing_repositories": 80,
        "saving_comparison": 95,
    }
    step_range = {
        "parsing_query": 10,
        "searching_github": 10,
        "merging_results": 10,
        "analyzing_repositories": 50,
        "comparing_repositories": 15,
        "saving_comparison": 5,
    }

    async def broadcast_step(
        self,
        step: str,
        *,
        message: str | None = None,
        current: int | None = None,
        total: int | None = None,
        percentage: int | None = None,
    ) -> None:
        if percentage is None:
            percentage = self.calculate_percentage(step, current, total)
        await self._broadcast(
            {
                "type": "progress",
                "step": step,
                "message": message or "Processing...",
                "current": current,
                "total": total,
                "percentage": percentage,
            }
        )

    @staticmethod
    def complete_event(comparison_id: int) -> dict[str, Any]:
        return {
            "type": "complete",
            "comparison_id": comparison_id,
            "comparison_url": f"{settings.public_api_url}/comparisons/{comparison_id}",
            "message": "Analysis complete!",
        }

    @staticmethod
    def error_event(message: str, *, retry_data: dict[str, Any] | None = None) -> dict[str, Any]:
        return {"type": "error", "message": message, "retry_data": retry_data or {}}

    async def broadcast_complete(self, comparison_id: int) -> None:
        await self._broadcast(self.complete_event(comparison_id))

    async def broadcast_error(self, message: str, *, retry_data: dict[str, Any] | None = None) -> None:
        await self._broadcast(self.error_event(message, retry_data=retry_data))


class AnalysisProgressBroadcaster(_ProgressBroadcaster):
    """Progress events for a deep analysis of one repository."""

    channel = ANALYSIS_CHANNEL
    step_base = {
        "fetching_readme": 0,
        "fetching_issues": 20,
        "running_analysis": 40,
        "saving_results": 90,
    }

    async def broadcast_step(self, step: str, *, message: str | None = None, percentage: int | None = None) -> None:
        await self._broadcast(
            {
                "type": "progress",
                "step": step,
                "message": message or "Processing...",
                "percentage": percentage if percentage is not None else self.step_base_percentage(step),
            }
        )

    @staticmethod
    def complete_event(repository_id: int) -> dict[str, Any]:
        return {
            "type": "complete",
            "repository_id": repository_id,
            "repository_url": f"{settings.public_api_url}/repositories/{repository_id}",
            "message": "Deep analysis complete!",
        }

    @staticmethod
    def error_event(message: str) -> dict[str, Any]:
        return {"type": "error", "message": message}

    async def broadcast_complete(self, repository_id: int) -> None:
        await self._broadcast(self.complete_event(repository_id))

    async def broadcast_error(self, message: str) -> None:
        await self._broadcast(self.error_event(message))
