from semantic_engine.segmentation.segmenter import (
    assign_segments,
    finalize_segment,
    segment_conversation,
    segmentation_stats,
)

__all__ = ["assign_segments", "finalize_segment", "segment_conversation", "segmentation_stats"]
