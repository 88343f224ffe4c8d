from repo_recon.progress.broadcasters import (
    AnalysisProgressBroadcaster,
    ComparisonProgressBroadcaster,
    stream_name_for,
)
from repo_recon.progress.bus import (
    InMemoryProgressBus,
    ProgressBus,
    RedisProgressBus,
    build_progress_bus,
    get_progress_bus,
)

__all__ = [
    "AnalysisProgressBroadcaster",
    "ComparisonProgressBroadcaster",
    "InMemoryProgressBus",
    "ProgressBus",
    "RedisProgressBus",
    "build_progress_bus",
    "get_progress_bus",
    "stream_name_for",
]
