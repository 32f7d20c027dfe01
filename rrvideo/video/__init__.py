from .batch import BatchResult, transform_many
from .bridge import CompletionBridge
from .config import TransformConfig, resolve_config, vcfg
from .pipeline import PipelineRun, transform_to_video
from .viewport import Viewport, compute_capture_viewport, compute_content_viewport

__all__ = [
    "BatchResult",
    "CompletionBridge",
    "PipelineRun",
    "TransformConfig",
    "Viewport",
    "compute_capture_viewport",
    "compute_content_viewport",
    "resolve_config",
    "transform_many",
    "transform_to_video",
    "vcfg",
]
