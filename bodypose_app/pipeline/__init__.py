"""Detection pipeline and result publishing."""

from bodypose_app.pipeline.detection import DetectionPipeline, PipelineState, PipelineStats
from bodypose_app.pipeline.publisher import (
    DetectionPublisher,
    Subscription,
    executor_dispatcher,
    inline_dispatcher,
)

__all__ = [
    "DetectionPipeline",
    "PipelineState",
    "PipelineStats",
    "DetectionPublisher",
    "Subscription",
    "executor_dispatcher",
    "inline_dispatcher",
]
