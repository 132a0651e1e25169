"""Qt-free data path: buffers, reducers, coordination and replay."""

from .buffer import Sample, SeriesBuffer
from .channels import HOST_GROUPS, LOAD_TEST_GROUPS, ChannelGroup, SeriesKind, SeriesSpec, XMode
from .coordinator import FeedCoordinator, RedrawBatcher
from .feeds import FeedRouter
from .reducer import HOST_QUERIES, HostReducer, HostSummary, LoadTestReducer, LoadTestSummary
from .replay import RunDescriptor, replay_run, synthesize_snapshots
from .scheduling import FrameScheduler, ManualScheduler

__all__ = [
    "ChannelGroup",
    "FeedCoordinator",
    "FeedRouter",
    "FrameScheduler",
    "HOST_GROUPS",
    "HOST_QUERIES",
    "HostReducer",
    "HostSummary",
    "LOAD_TEST_GROUPS",
    "LoadTestReducer",
    "LoadTestSummary",
    "ManualScheduler",
    "RedrawBatcher",
    "RunDescriptor",
    "Sample",
    "SeriesBuffer",
    "SeriesKind",
    "SeriesSpec",
    "XMode",
    "replay_run",
    "synthesize_snapshots",
]
