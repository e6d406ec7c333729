"""
Main Pipeline Module.

Orchestrates the complete per-frame tracking pipeline.
"""

from .orchestrator import TrackingPipeline, PipelineStats
