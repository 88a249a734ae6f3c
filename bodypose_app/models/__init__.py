"""Pose inference engines."""

from bodypose_app.models.pose_engine import MediaPipePoseEngine, PoseInferenceEngine, create_engine

__all__ = ["PoseInferenceEngine", "MediaPipePoseEngine", "create_engine"]
